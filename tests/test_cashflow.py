import datetime as dt

import pytest

from wealth_core.domain.models import CashFlowRecord, Transaction
from wealth_core.services.cashflow import (
    aggregate_cash_flows,
    cash_flow_map,
    filter_cash_flows,
    summarize_cash_flows,
)


def _transactions():
    return [
        Transaction(dt.date(2024, 1, 3), 5000.0, "income", "salary"),
        Transaction(dt.date(2024, 1, 5), -1500.0, "fixed", "rent"),
        Transaction(dt.date(2024, 1, 20), -300.0, "variable", "food"),
        Transaction(dt.date(2024, 1, 25), 120.0, "income", "div"),
        Transaction(dt.date(2024, 2, 1), 5000.0, "income", "salary"),
        Transaction(dt.date(2024, 2, 10), -7000.0, "debt", "loan"),
    ]


def test_aggregates_per_calendar_month():
    records = aggregate_cash_flows(_transactions())
    assert [r.month for r in records] == [dt.date(2024, 1, 1), dt.date(2024, 2, 1)]
    jan, feb = records
    assert jan.income == pytest.approx(5120.0)
    assert jan.expenses == pytest.approx(1800.0)
    assert jan.net_cash_flow == pytest.approx(3320.0)
    assert feb.net_cash_flow == pytest.approx(-2000.0)


def test_dividend_category_is_not_a_contribution():
    jan = aggregate_cash_flows(_transactions(), dividend_category_id="div")[0]
    assert jan.income == pytest.approx(5000.0)
    assert jan.dividend_income == pytest.approx(120.0)
    assert jan.net_cash_flow == pytest.approx(3200.0)


def test_date_filter_is_inclusive():
    records = aggregate_cash_flows(_transactions(), start=dt.date(2024, 1, 20), end=dt.date(2024, 2, 1))
    assert len(records) == 2
    assert records[0].expenses == pytest.approx(300.0)
    assert records[1].expenses == pytest.approx(0.0)


def test_no_transactions_gives_no_records():
    assert aggregate_cash_flows([]) == []


def test_filter_and_summarize():
    records = [
        CashFlowRecord(dt.date(2024, m, 1), income=1000.0 * m, expenses=2500.0) for m in range(1, 6)
    ]
    sliced = filter_cash_flows(records, (2024, 2), (2024, 4))
    assert [r.key for r in sliced] == [(2024, 2), (2024, 3), (2024, 4)]

    totals = summarize_cash_flows(sliced)
    # nets are -500, +500, +1500
    assert totals["total_contributions"] == pytest.approx(2000.0)
    assert totals["total_withdrawals"] == pytest.approx(500.0)
    assert totals["net_cash_flow"] == pytest.approx(1500.0)
    assert totals["total_income"] == pytest.approx(9000.0)
    assert cash_flow_map(sliced)[(2024, 3)] == pytest.approx(500.0)

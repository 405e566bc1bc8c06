from __future__ import annotations

import bisect
import datetime as dt
import logging
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from wealth_core.domain.models import CashFlowRecord, MonthKey, Transaction

logger = logging.getLogger(__name__)

INCOME_TYPE = "income"


def aggregate_cash_flows(
    transactions: Iterable[Transaction],
    dividend_category_id: Optional[str] = None,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[CashFlowRecord]:
    """
    Group raw transactions into one CashFlowRecord per calendar month:
    - income records go to ``income``, except the dividend category which
      goes to ``dividend_income`` (portfolio return, not a contribution)
    - every other type is an expense; its absolute magnitude is summed
    - optional inclusive ``start``/``end`` date filter is applied first
    """
    rows = [
        {"date": t.date, "amount": float(t.amount), "type": t.type, "category_id": t.category_id}
        for t in transactions
        if (start is None or t.date >= start) and (end is None or t.date <= end)
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    df["month"] = pd.to_datetime(df["date"]).dt.to_period("M")

    is_income = df["type"] == INCOME_TYPE
    if dividend_category_id:
        is_dividend = is_income & (df["category_id"] == dividend_category_id)
    else:
        is_dividend = pd.Series(False, index=df.index)

    df["income"] = df["amount"].where(is_income & ~is_dividend, 0.0)
    df["dividend_income"] = df["amount"].where(is_dividend, 0.0)
    df["expenses"] = df["amount"].abs().where(~is_income, 0.0)

    monthly = df.groupby("month")[["income", "expenses", "dividend_income"]].sum().sort_index()

    records = [
        CashFlowRecord(
            month=period.to_timestamp().date(),
            income=float(row["income"]),
            expenses=float(row["expenses"]),
            dividend_income=float(row["dividend_income"]),
        )
        for period, row in monthly.iterrows()
    ]
    logger.debug("Aggregated %d transactions into %d monthly cash flows", len(rows), len(records))
    return records


def filter_cash_flows(
    records: Sequence[CashFlowRecord],
    start: MonthKey,
    end: MonthKey,
    keys: Optional[Sequence[MonthKey]] = None,
) -> List[CashFlowRecord]:
    """
    Slice a sorted whole-history cash-flow list to the inclusive month range.
    Pass precomputed ``keys`` when slicing the same list repeatedly.
    """
    if keys is None:
        keys = [r.key for r in records]
    lo = bisect.bisect_left(keys, start)
    hi = bisect.bisect_right(keys, end)
    return list(records[lo:hi])


def cash_flow_map(records: Iterable[CashFlowRecord]) -> dict:
    """Month key -> net cash flow lookup."""
    return {r.key: r.net_cash_flow for r in records}


def summarize_cash_flows(records: Iterable[CashFlowRecord]) -> dict:
    totals = {
        "total_contributions": 0.0,
        "total_withdrawals": 0.0,
        "total_income": 0.0,
        "total_expenses": 0.0,
        "total_dividend_income": 0.0,
    }
    for r in records:
        totals["total_income"] += r.income
        totals["total_expenses"] += r.expenses
        totals["total_dividend_income"] += r.dividend_income
        if r.net_cash_flow > 0:
            totals["total_contributions"] += r.net_cash_flow
        else:
            totals["total_withdrawals"] += abs(r.net_cash_flow)
    totals["net_cash_flow"] = totals["total_contributions"] - totals["total_withdrawals"]
    return totals


__all__ = [
    "aggregate_cash_flows",
    "filter_cash_flows",
    "cash_flow_map",
    "summarize_cash_flows",
]

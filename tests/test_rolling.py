import datetime as dt

import pytest

from wealth_core.domain.models import CashFlowRecord, Snapshot
from wealth_core.services.rolling import calculate_rolling_periods


def _growing(months: int, rate: float = 0.01):
    return [
        Snapshot(year=2020 + i // 12, month=i % 12 + 1, total_net_worth=100000 * (1 + rate) ** i)
        for i in range(months)
    ]


def test_window_count_and_bounds():
    periods = calculate_rolling_periods(_growing(14), [], 12)
    assert len(periods) == 2
    assert periods[0].period_start == dt.date(2020, 1, 1)
    assert periods[0].period_end == dt.date(2021, 1, 1)
    assert periods[-1].period_end == dt.date(2021, 2, 1)


def test_window_cagr_uses_window_width():
    periods = calculate_rolling_periods(_growing(13), [], 12)
    assert periods[0].cagr == pytest.approx((1.01**12 - 1) * 100)


def test_window_cagr_removes_contributions():
    snaps = _growing(13, rate=0.0)
    snaps[-1] = Snapshot(year=2021, month=1, total_net_worth=110000)
    flows = [CashFlowRecord(month=dt.date(2021, 1, 1), income=10000.0, expenses=0.0)]
    periods = calculate_rolling_periods(snaps, flows, 12)
    assert periods[0].cagr == pytest.approx(0.0)


def test_not_enough_history_gives_no_windows():
    assert calculate_rolling_periods(_growing(12), [], 12) == []


def test_dummy_snapshots_are_ignored():
    snaps = _growing(12) + [Snapshot(year=2021, month=1, total_net_worth=1.0, is_dummy=True)]
    assert calculate_rolling_periods(snaps, [], 12) == []


def test_invalid_window_raises():
    with pytest.raises(ValueError):
        calculate_rolling_periods(_growing(24), [], 0)

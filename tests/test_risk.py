import datetime as dt
import math

import numpy as np
import pytest

from wealth_core.domain.models import CashFlowRecord, Snapshot
from wealth_core.services.risk import (
    analyze_drawdown,
    calculate_drawdown_duration,
    calculate_max_drawdown,
    calculate_recovery_time,
    calculate_sharpe_ratio,
    calculate_volatility,
    drawdown_series,
    monthly_returns,
)


def _series(*values, year=2023):
    return [Snapshot(year=year, month=i + 1, total_net_worth=v) for i, v in enumerate(values)]


def test_drawdown_recovers_within_period():
    snaps = _series(100000, 90000, 120000)
    analysis = analyze_drawdown(snaps, [])
    assert analysis.max_drawdown == pytest.approx(-10.0)
    assert analysis.drawdown_duration == 3
    assert analysis.recovery_time == 2
    assert analysis.is_recovered
    assert analysis.trough_label == "02/23"
    assert analysis.drawdown_period == "01/23 - 03/23"
    assert analysis.recovery_period == "02/23 - 03/23"


def test_open_drawdown_runs_to_latest_snapshot():
    snaps = _series(100000, 80000, 90000)
    analysis = analyze_drawdown(snaps, [])
    assert analysis.max_drawdown == pytest.approx(-20.0)
    assert not analysis.is_recovered
    assert analysis.drawdown_duration == 3
    assert analysis.recovery_time == 2
    assert analysis.drawdown_period == "01/23 - Present"


def test_rising_series_has_no_drawdown():
    snaps = _series(100, 110, 120, 130)
    assert calculate_max_drawdown(snaps, []) is None
    assert calculate_drawdown_duration(snaps, []) is None
    assert calculate_recovery_time(snaps, []) is None


def test_drawdown_removes_contributions():
    snaps = _series(100000, 110000, 105000)
    flows = [CashFlowRecord(month=dt.date(2023, 2, 1), income=10000.0, expenses=0.0)]
    # adjusted series is 100000, 100000, 95000
    assert calculate_max_drawdown(snaps, flows) == pytest.approx(-5.0)


def test_contribution_does_not_hide_a_loss():
    snaps = _series(100000, 100000)
    flows = [CashFlowRecord(month=dt.date(2023, 2, 1), income=20000.0, expenses=0.0)]
    assert calculate_max_drawdown(snaps, flows) == pytest.approx(-20.0)


def test_recovery_time_never_exceeds_duration():
    snaps = _series(100, 120, 90, 95, 80, 100, 125, 110)
    analysis = analyze_drawdown(snaps, [])
    assert analysis.max_drawdown <= 0
    assert analysis.recovery_time <= analysis.drawdown_duration
    # peak 120 in Feb, trough 80 in May, back above 120 in Jul
    assert analysis.max_drawdown == pytest.approx(-100 / 3)
    assert analysis.drawdown_duration == 6
    assert analysis.recovery_time == 3


def test_drawdown_series_tracks_running_peak():
    assert drawdown_series([100, 50, 100, 80]) == pytest.approx([0.0, -50.0, 0.0, -20.0])


def test_volatility_filters_outlier_months():
    snaps = _series(100, 102, 100, 180, 183.6)
    returns = monthly_returns(snaps, [])
    assert len(returns) == 3
    assert all(abs(r) < 50 for r in returns)
    expected = float(np.std(returns, ddof=1)) * math.sqrt(12)
    assert calculate_volatility(snaps, []) == pytest.approx(expected)


def test_volatility_undefined_with_too_few_returns():
    assert calculate_volatility(_series(100), []) is None
    assert calculate_volatility(_series(100, 101), []) is None
    # the only other month is an outlier
    assert calculate_volatility(_series(100, 101, 300), []) is None


def test_sharpe_ratio():
    assert calculate_sharpe_ratio(12.5, 2.5, 5.0) == pytest.approx(2.0)
    assert calculate_sharpe_ratio(8.0, 2.5, 0.0) is None


def test_return_to_peak_starts_a_new_drawdown_episode():
    # March is back at the January high, so the deeper April dip runs from March
    snaps = _series(100, 90, 100, 80, 100)
    analysis = analyze_drawdown(snaps, [])
    assert analysis.max_drawdown == pytest.approx(-20.0)
    assert analysis.peak == (2023, 3)
    assert analysis.trough == (2023, 4)
    assert analysis.drawdown_duration == 3
    assert analysis.recovery_time == 2
    assert analysis.drawdown_period == "03/23 - 05/23"

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from wealth_core.domain.models import CashFlowRecord, DrawdownAnalysis, Snapshot
from wealth_core.services.cashflow import cash_flow_map

logger = logging.getLogger(__name__)

# Monthly moves at or beyond +/-50% are treated as contribution/withdrawal
# artifacts rather than market movement. Heuristic policy threshold.
OUTLIER_THRESHOLD_PCT = 50.0
MONTHS_PER_YEAR = 12


def monthly_returns(
    snapshots: Sequence[Snapshot],
    cash_flows: Sequence[CashFlowRecord],
    outlier_threshold: float = OUTLIER_THRESHOLD_PCT,
) -> List[float]:
    """Cash-flow adjusted month-over-month returns in percent, outliers removed."""
    flows = cash_flow_map(cash_flows)
    returns: List[float] = []
    for prev, curr in zip(snapshots, snapshots[1:]):
        if prev.total_net_worth == 0:
            continue
        cash_flow = flows.get(curr.key, 0.0)
        r = ((curr.total_net_worth - cash_flow) / prev.total_net_worth - 1) * 100
        if abs(r) < outlier_threshold:
            returns.append(r)
    return returns


def calculate_volatility(
    snapshots: Sequence[Snapshot],
    cash_flows: Sequence[CashFlowRecord],
    outlier_threshold: float = OUTLIER_THRESHOLD_PCT,
) -> Optional[float]:
    """Annualized volatility in percent (sample std of monthly returns x sqrt(12))."""
    if len(snapshots) < 2:
        return None
    returns = monthly_returns(snapshots, cash_flows, outlier_threshold)
    if len(returns) < 2:
        logger.debug("Volatility undefined: %d usable monthly returns", len(returns))
        return None
    return float(np.std(returns, ddof=1)) * math.sqrt(MONTHS_PER_YEAR)


def adjusted_values(snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]) -> List[float]:
    """Net worth minus cumulative external cash flow, isolating investment performance."""
    flows = cash_flow_map(cash_flows)
    cumulative = 0.0
    values = []
    for snap in snapshots:
        cumulative += flows.get(snap.key, 0.0)
        values.append(snap.total_net_worth - cumulative)
    return values


def running_peak_indices(values: Sequence[float]) -> List[int]:
    """Index of the running high at each point; a tie moves the peak forward."""
    indices = []
    peak_idx = 0
    for i, value in enumerate(values):
        if value >= values[peak_idx]:
            peak_idx = i
        indices.append(peak_idx)
    return indices


def drawdown_series(values: Sequence[float]) -> List[float]:
    """Percent drawdown from the running peak at each point (0 where the peak is not positive)."""
    series = []
    for value, peak_idx in zip(values, running_peak_indices(values)):
        peak = values[peak_idx]
        series.append((value - peak) / peak * 100 if peak > 0 else 0.0)
    return series


def analyze_drawdown(snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]) -> DrawdownAnalysis:
    """
    Maximum drawdown on the cash-flow adjusted series plus its timing:
    - duration: peak preceding the trough to first recovery, inclusive
    - recovery time: trough to first recovery, inclusive
    An unrecovered drawdown runs to the latest snapshot and stays open-ended.
    """
    if len(snapshots) < 2:
        return DrawdownAnalysis()

    values = adjusted_values(snapshots, cash_flows)
    drawdowns = drawdown_series(values)

    max_dd = 0.0
    trough_idx: Optional[int] = None
    for i, dd in enumerate(drawdowns):
        if dd < max_dd:
            max_dd = dd
            trough_idx = i

    if trough_idx is None:
        return DrawdownAnalysis()

    dd_peak_idx = running_peak_indices(values)[trough_idx]
    peak_value = values[dd_peak_idx]
    recovery_idx = next(
        (j for j in range(trough_idx + 1, len(values)) if values[j] >= peak_value),
        None,
    )
    end_idx = recovery_idx if recovery_idx is not None else len(values) - 1

    return DrawdownAnalysis(
        max_drawdown=max_dd,
        peak=snapshots[dd_peak_idx].key,
        trough=snapshots[trough_idx].key,
        recovery=snapshots[recovery_idx].key if recovery_idx is not None else None,
        drawdown_duration=end_idx - dd_peak_idx + 1,
        recovery_time=end_idx - trough_idx + 1,
        is_recovered=recovery_idx is not None,
    )


def calculate_max_drawdown(snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]) -> Optional[float]:
    return analyze_drawdown(snapshots, cash_flows).max_drawdown


def calculate_drawdown_duration(snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]) -> Optional[int]:
    return analyze_drawdown(snapshots, cash_flows).drawdown_duration


def calculate_recovery_time(snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]) -> Optional[int]:
    return analyze_drawdown(snapshots, cash_flows).recovery_time


def calculate_sharpe_ratio(annual_return: float, risk_free_rate: float, volatility: float) -> Optional[float]:
    """(return - risk free) / volatility, all in percent."""
    if volatility == 0:
        return None
    return (annual_return - risk_free_rate) / volatility

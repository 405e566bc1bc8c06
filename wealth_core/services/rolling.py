from __future__ import annotations

import logging
from typing import List, Sequence

from wealth_core.domain.models import CashFlowRecord, RollingPeriod, Snapshot
from wealth_core.services import returns, risk
from wealth_core.services.cashflow import filter_cash_flows

logger = logging.getLogger(__name__)


def calculate_rolling_periods(
    snapshots: Sequence[Snapshot],
    cash_flows: Sequence[CashFlowRecord],
    window_months: int,
    risk_free_rate: float = 2.5,
) -> List[RollingPeriod]:
    """
    Slide a ``window_months`` wide window over the sorted, non-dummy series.

    ``cash_flows`` is the whole-history aggregated list; each window takes
    its slice by month range instead of re-aggregating.
    """
    if window_months < 1:
        raise ValueError("window_months must be positive")

    series = returns.sort_snapshots([s for s in snapshots if not s.is_dummy])
    if len(series) < window_months + 1:
        logger.debug("Rolling %dM: only %d snapshots", window_months, len(series))
        return []

    flow_keys = [cf.key for cf in cash_flows]
    periods: List[RollingPeriod] = []
    for i in range(window_months, len(series)):
        window = series[i - window_months : i + 1]
        start, end = window[0], window[-1]
        flows = filter_cash_flows(cash_flows, start.key, end.key, keys=flow_keys)

        net_cash_flow = sum(cf.net_cash_flow for cf in flows)
        cagr = returns.calculate_cagr(start.total_net_worth, end.total_net_worth, net_cash_flow, window_months)
        volatility = risk.calculate_volatility(window, flows)
        twr = returns.calculate_time_weighted_return(window, flows)
        sharpe = (
            risk.calculate_sharpe_ratio(twr, risk_free_rate, volatility)
            if twr is not None and volatility is not None
            else None
        )
        periods.append(
            RollingPeriod(
                period_start=start.date,
                period_end=end.date,
                cagr=cagr,
                volatility=volatility,
                sharpe_ratio=sharpe,
            )
        )
    return periods

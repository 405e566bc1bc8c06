from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Optional, Sequence

from wealth_core.domain.models import (
    AnalyticsSettings,
    CashFlowRecord,
    PerformanceMetrics,
    PerformanceReport,
    Snapshot,
    TimePeriod,
    Transaction,
)
from wealth_core.services import returns, risk
from wealth_core.services.cashflow import aggregate_cash_flows, filter_cash_flows, summarize_cash_flows
from wealth_core.services.periods import snapshots_for_period
from wealth_core.services.rolling import calculate_rolling_periods

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = "Insufficient data: need at least 2 snapshots"


def _last_day_of_month(year: int, month: int) -> dt.date:
    if month == 12:
        return dt.date(year, 12, 31)
    return dt.date(year, month + 1, 1) - dt.timedelta(days=1)


def calculate_performance_for_period(
    snapshots: Sequence[Snapshot],
    cash_flows: Sequence[CashFlowRecord],
    period: TimePeriod = TimePeriod.ALL,
    risk_free_rate: float = 2.5,
    now: Optional[dt.date] = None,
    custom_start: Optional[dt.date] = None,
    custom_end: Optional[dt.date] = None,
    dividend_category_id: Optional[str] = None,
) -> PerformanceMetrics:
    """
    Build the metrics bundle for one period.

    ``cash_flows`` is the aggregated whole-history list; it is sliced to the
    period here. Every metric is computed independently, so one undefined
    value never blanks the others.
    """
    period = TimePeriod(period)
    selected = snapshots_for_period(snapshots, period, now, custom_start, custom_end)

    if len(selected) < 2:
        logger.debug("%s: %d snapshots, bundle flagged insufficient", period.value, len(selected))
        return PerformanceMetrics(
            time_period=period,
            start_date=custom_start,
            end_date=custom_end,
            risk_free_rate=risk_free_rate,
            dividend_category_id=dividend_category_id,
            has_insufficient_data=True,
            error_message=INSUFFICIENT_DATA_MESSAGE,
        )

    start, end = selected[0], selected[-1]
    months = returns.period_months(start, end)
    flows = filter_cash_flows(cash_flows, start.key, end.key)
    totals = summarize_cash_flows(flows)
    net_cash_flow = totals["net_cash_flow"]

    twr = returns.calculate_time_weighted_return(selected, flows)
    volatility = risk.calculate_volatility(selected, flows)
    drawdown = risk.analyze_drawdown(selected, flows)
    sharpe = (
        risk.calculate_sharpe_ratio(twr, risk_free_rate, volatility)
        if twr is not None and volatility is not None
        else None
    )

    return PerformanceMetrics(
        time_period=period,
        start_date=start.date,
        end_date=_last_day_of_month(end.year, end.month),
        start_net_worth=start.total_net_worth,
        end_net_worth=end.total_net_worth,
        cash_flows=flows,
        roi=returns.calculate_roi(start.total_net_worth, end.total_net_worth, net_cash_flow),
        cagr=returns.calculate_cagr(start.total_net_worth, end.total_net_worth, net_cash_flow, months),
        time_weighted_return=twr,
        money_weighted_return=returns.calculate_irr(start, end, flows),
        sharpe_ratio=sharpe,
        volatility=volatility,
        max_drawdown=drawdown.max_drawdown,
        drawdown_duration=drawdown.drawdown_duration,
        recovery_time=drawdown.recovery_time,
        max_drawdown_label=drawdown.trough_label,
        drawdown_period=drawdown.drawdown_period,
        recovery_period=drawdown.recovery_period,
        risk_free_rate=risk_free_rate,
        dividend_category_id=dividend_category_id,
        number_of_months=months,
        has_insufficient_data=False,
        **totals,
    )


def build_performance_report(
    snapshots: Sequence[Snapshot],
    transactions: Iterable[Transaction],
    settings: Optional[AnalyticsSettings] = None,
    now: Optional[dt.date] = None,
) -> PerformanceReport:
    """
    Every standard period plus 12M/36M rolling windows. Transactions are
    aggregated once for the whole history and shared by all computations.
    """
    settings = settings or AnalyticsSettings()
    now = now or dt.date.today()
    cash_flows = aggregate_cash_flows(transactions, settings.dividend_category_id)

    def _period(period: TimePeriod) -> PerformanceMetrics:
        return calculate_performance_for_period(
            snapshots,
            cash_flows,
            period,
            risk_free_rate=settings.risk_free_rate,
            now=now,
            dividend_category_id=settings.dividend_category_id,
        )

    return PerformanceReport(
        ytd=_period(TimePeriod.YTD),
        one_year=_period(TimePeriod.ONE_YEAR),
        three_year=_period(TimePeriod.THREE_YEAR),
        five_year=_period(TimePeriod.FIVE_YEAR),
        all_time=_period(TimePeriod.ALL),
        rolling_12m=calculate_rolling_periods(snapshots, cash_flows, 12, settings.risk_free_rate),
        rolling_36m=calculate_rolling_periods(snapshots, cash_flows, 36, settings.risk_free_rate),
        snapshot_count=sum(1 for s in snapshots if not s.is_dummy),
        last_updated=dt.datetime.now(),
    )

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from wealth_core.domain.models import (
    CashFlowRecord,
    MonthlyReturnRow,
    PerformanceChartPoint,
    Snapshot,
    UnderwaterPoint,
)
from wealth_core.services.cashflow import cash_flow_map
from wealth_core.services.returns import sort_snapshots
from wealth_core.services.risk import adjusted_values, drawdown_series


def performance_chart_data(
    snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]
) -> List[PerformanceChartPoint]:
    """Net worth split into cumulative contributions and the remaining returns."""
    flows = cash_flow_map(cash_flows)
    cumulative = 0.0
    points = []
    for snap in sort_snapshots(snapshots):
        cumulative += flows.get(snap.key, 0.0)
        points.append(
            PerformanceChartPoint(
                month=snap.date,
                net_worth=snap.total_net_worth,
                contributions=cumulative,
                returns=snap.total_net_worth - cumulative,
            )
        )
    return points


def monthly_return_heatmap(
    snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]
) -> List[MonthlyReturnRow]:
    """
    Cash-flow adjusted monthly returns (percent) laid out year by month.
    A month is None when it has no snapshot, no preceding calendar-month
    snapshot, or a zero starting value. Outliers are kept.
    """
    ordered = sort_snapshots(snapshots)
    if not ordered:
        return []

    flows = cash_flow_map(cash_flows)
    by_key = {s.key: s for s in ordered}
    rows: Dict[int, Dict[int, Optional[float]]] = {}
    for year in range(ordered[0].year, ordered[-1].year + 1):
        rows[year] = {m: None for m in range(1, 13)}

    for snap in ordered:
        prev_key = (snap.year - 1, 12) if snap.month == 1 else (snap.year, snap.month - 1)
        prev = by_key.get(prev_key)
        if prev is None or prev.total_net_worth == 0:
            continue
        cash_flow = flows.get(snap.key, 0.0)
        rows[snap.year][snap.month] = ((snap.total_net_worth - cash_flow) / prev.total_net_worth - 1) * 100

    return [MonthlyReturnRow(year=year, returns=months) for year, months in sorted(rows.items())]


def underwater_series(
    snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]
) -> List[UnderwaterPoint]:
    ordered = sort_snapshots(snapshots)
    drawdowns = drawdown_series(adjusted_values(ordered, cash_flows))
    return [UnderwaterPoint(month=s.date, drawdown=dd) for s, dd in zip(ordered, drawdowns)]

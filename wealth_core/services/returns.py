from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from wealth_core.domain.models import CashFlowRecord, Snapshot, months_between
from wealth_core.services.cashflow import cash_flow_map

logger = logging.getLogger(__name__)

IRR_INITIAL_GUESS = 0.10
IRR_MAX_ITERATIONS = 100
IRR_TOLERANCE = 1e-6
IRR_RATE_FLOOR = -0.99


def sort_snapshots(snapshots: Sequence[Snapshot]) -> List[Snapshot]:
    return sorted(snapshots, key=lambda s: s.key)


def period_months(start: Snapshot, end: Snapshot) -> int:
    """Calendar months covered by the period, both ends inclusive (Jan..Dec == 12)."""
    return months_between(end.key, start.key) + 1


def calculate_roi(start_nw: float, end_nw: float, net_cash_flow: float) -> Optional[float]:
    """Simple return on the starting value net of contributions, in percent."""
    if start_nw == 0:
        return None
    return (end_nw - start_nw - net_cash_flow) / start_nw * 100


def calculate_cagr(start_nw: float, end_nw: float, net_cash_flow: float, months: int) -> Optional[float]:
    """
    Compound annual growth in percent. Contributions are added to the
    starting value so they are not counted as growth.
    """
    if months < 1:
        return None
    adjusted_start = start_nw + net_cash_flow
    if adjusted_start <= 0:
        return None
    try:
        cagr = (math.pow(end_nw / adjusted_start, 12 / months) - 1) * 100
    except (ValueError, OverflowError):
        return None
    return cagr if math.isfinite(cagr) else None


def calculate_time_weighted_return(
    snapshots: Sequence[Snapshot], cash_flows: Sequence[CashFlowRecord]
) -> Optional[float]:
    """
    Annualized TWR in percent.

    Each consecutive snapshot pair contributes ``(end - cash_flow) / start``
    where the cash flow is the one booked in the ending month; pairs with a
    zero starting value are skipped. Factors are linked geometrically and
    annualized over ``len(snapshots) - 1`` months.
    """
    if len(snapshots) < 2:
        return None

    flows = cash_flow_map(cash_flows)
    linked = 1.0
    for prev, curr in zip(snapshots, snapshots[1:]):
        if prev.total_net_worth == 0:
            continue
        cash_flow = flows.get(curr.key, 0.0)
        linked *= (curr.total_net_worth - cash_flow) / prev.total_net_worth

    total_months = len(snapshots) - 1
    try:
        twr = (math.pow(linked, 12 / total_months) - 1) * 100
    except (ValueError, OverflowError):
        return None
    return twr if math.isfinite(twr) else None


def build_irr_timeline(
    start: Snapshot, end: Snapshot, cash_flows: Sequence[CashFlowRecord]
) -> List[Tuple[float, int]]:
    """
    (amount, months_from_start) pairs: the starting value as an outflow at 0,
    each monthly net cash flow at the end of its month, and the ending value
    as an inflow at the end of the period.
    """
    months = period_months(start, end)
    timeline = [(-start.total_net_worth, 0)]
    for cf in cash_flows:
        offset = months_between(cf.key, start.key) + 1
        timeline.append((cf.net_cash_flow, min(max(offset, 0), months)))
    timeline.append((end.total_net_worth, months))
    return timeline


def solve_irr(
    timeline: Sequence[Tuple[float, int]],
    initial_guess: float = IRR_INITIAL_GUESS,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: float = IRR_TOLERANCE,
    rate_floor: float = IRR_RATE_FLOOR,
) -> Optional[float]:
    """
    Newton-Raphson on NPV(rate) with yearly compounding. Returns the annual
    rate as a fraction, or None on a zero derivative or when the iteration
    cap is reached without |NPV| < tolerance.
    """
    rate = initial_guess
    for _ in range(max_iterations):
        npv = 0.0
        derivative = 0.0
        for amount, months in timeline:
            years = months / 12
            discount = math.pow(1 + rate, -years)
            npv += amount * discount
            derivative -= amount * years * discount / (1 + rate)

        if abs(npv) < tolerance:
            return rate
        if derivative == 0:
            logger.debug("IRR derivative vanished at rate %.6f", rate)
            return None

        rate -= npv / derivative
        if rate < rate_floor:
            rate = rate_floor

    logger.debug("IRR did not converge within %d iterations", max_iterations)
    return None


def calculate_irr(
    start: Snapshot,
    end: Snapshot,
    cash_flows: Sequence[CashFlowRecord],
    **solver_options,
) -> Optional[float]:
    """Money-weighted return in percent."""
    if start.total_net_worth == 0 or period_months(start, end) < 1:
        return None
    try:
        rate = solve_irr(build_irr_timeline(start, end, cash_flows), **solver_options)
    except (OverflowError, ZeroDivisionError):
        logger.debug("IRR evaluation overflowed")
        return None
    if rate is None:
        return None
    return rate * 100


from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Optional

from wealth_core.domain.models import (
    FIREMetrics,
    FIREProjection,
    FIREProjectionYear,
    PlannedFIREMetrics,
    ProjectionScenario,
)

logger = logging.getLogger(__name__)

SCENARIO_NAMES = ("bear", "base", "bull")
DEFAULT_MAX_YEARS = 50
POST_FIRE_TAIL_YEARS = 5

DEFAULT_SCENARIOS: Dict[str, ProjectionScenario] = {
    "bear": ProjectionScenario(growth_rate=4.0, inflation_rate=3.5),
    "base": ProjectionScenario(growth_rate=7.0, inflation_rate=2.5),
    "bull": ProjectionScenario(growth_rate=10.0, inflation_rate=1.5),
}


def fire_number(annual_expenses: float, withdrawal_rate: float) -> Optional[float]:
    """Net worth whose ``withdrawal_rate`` percent covers ``annual_expenses``."""
    if withdrawal_rate <= 0:
        return None
    return annual_expenses / (withdrawal_rate / 100)


def calculate_fire_metrics(current_net_worth: float, annual_expenses: float, withdrawal_rate: float) -> FIREMetrics:
    target = fire_number(annual_expenses, withdrawal_rate)
    annual_allowance = current_net_worth * withdrawal_rate / 100
    current_wr = annual_expenses / current_net_worth * 100 if current_net_worth > 0 else None
    return FIREMetrics(
        current_net_worth=current_net_worth,
        annual_expenses=annual_expenses,
        withdrawal_rate=withdrawal_rate,
        fire_number=target,
        progress_to_fi=current_net_worth / target * 100 if target else None,
        annual_allowance=annual_allowance,
        monthly_allowance=annual_allowance / 12,
        daily_allowance=annual_allowance / 365,
        current_withdrawal_rate=current_wr,
        years_of_expenses=100 / current_wr if current_wr else None,
    )


def calculate_planned_fire_metrics(
    current_net_worth: float, planned_annual_expenses: float, withdrawal_rate: float
) -> PlannedFIREMetrics:
    target = fire_number(planned_annual_expenses, withdrawal_rate)
    return PlannedFIREMetrics(
        planned_annual_expenses=planned_annual_expenses,
        planned_fire_number=target,
        planned_progress_to_fi=current_net_worth / target * 100 if target else None,
    )


def project_fire(
    initial_net_worth: float,
    annual_expenses: float,
    annual_savings: float,
    withdrawal_rate: float,
    scenarios: Optional[Dict[str, ProjectionScenario]] = None,
    max_years: int = DEFAULT_MAX_YEARS,
    start_year: Optional[int] = None,
) -> FIREProjection:
    """
    Deterministic year-by-year growth per scenario.

    Each year a scenario grows its portfolio, adds the nominal savings (until
    it has reached independence), inflates its own expenses and compares the
    portfolio to ``expenses / withdrawal_rate``. The projection ends at
    ``max_years`` or ``POST_FIRE_TAIL_YEARS`` after every scenario has
    reached independence.
    """
    scenarios = dict(scenarios or DEFAULT_SCENARIOS)
    missing = [name for name in SCENARIO_NAMES if name not in scenarios]
    if missing:
        raise ValueError(f"Missing projection scenarios: {missing}")
    if max_years < 0:
        raise ValueError("max_years must not be negative")
    start_year = start_year if start_year is not None else dt.date.today().year

    net_worth = {name: float(initial_net_worth) for name in scenarios}
    expenses = {name: float(annual_expenses) for name in scenarios}
    years_to_fire: Dict[str, Optional[int]] = {name: None for name in scenarios}
    yearly = []

    for year in range(1, max_years + 1):
        numbers: Dict[str, Optional[float]] = {}
        reached: Dict[str, bool] = {}
        for name, scenario in scenarios.items():
            net_worth[name] *= 1 + scenario.growth_rate / 100
            if years_to_fire[name] is None:
                net_worth[name] += annual_savings
            expenses[name] *= 1 + scenario.inflation_rate / 100
            numbers[name] = fire_number(expenses[name], withdrawal_rate)
            reached[name] = numbers[name] is not None and net_worth[name] >= numbers[name]
            if reached[name] and years_to_fire[name] is None:
                years_to_fire[name] = year

        yearly.append(
            FIREProjectionYear(
                year=year,
                calendar_year=start_year + year,
                net_worth=dict(net_worth),
                expenses=dict(expenses),
                fire_number=numbers,
                fire_reached=reached,
            )
        )

        if all(y is not None for y in years_to_fire.values()):
            if year >= max(years_to_fire.values()) + POST_FIRE_TAIL_YEARS:
                break

    logger.debug("FIRE projection: %d years, years to FIRE %s", len(yearly), years_to_fire)
    return FIREProjection(
        yearly=yearly,
        years_to_fire=years_to_fire,
        annual_savings=annual_savings,
        initial_net_worth=initial_net_worth,
        initial_expenses=annual_expenses,
        withdrawal_rate=withdrawal_rate,
        scenarios=scenarios,
    )

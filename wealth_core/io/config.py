from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from wealth_core.domain.models import (
    AnalyticsSettings,
    AssetClassAssumption,
    MonteCarloParams,
    MonteCarloScenario,
    ProjectionScenario,
    WithdrawalAdjustment,
)


def load_settings(path: str | Path) -> AnalyticsSettings:
    data = _read_json(path)
    fire = data.get("fire_scenarios")
    monte_carlo = data.get("monte_carlo_scenarios")
    planned = data.get("planned_annual_expenses")
    return AnalyticsSettings(
        risk_free_rate=float(data.get("risk_free_rate", 2.5)),
        dividend_category_id=data.get("dividend_category_id"),
        withdrawal_rate=float(data.get("withdrawal_rate", 4.0)),
        planned_annual_expenses=float(planned) if planned is not None else None,
        fire_scenarios=parse_fire_scenarios(fire) if fire else None,
        monte_carlo_scenarios=parse_monte_carlo_scenarios(monte_carlo) if monte_carlo else None,
    )


def load_monte_carlo_params(path: str | Path) -> MonteCarloParams:
    return parse_monte_carlo_params(_read_json(path))


def parse_monte_carlo_params(data: Dict[str, Any]) -> MonteCarloParams:
    if "initial_portfolio" not in data:
        raise ValueError("Monte Carlo config requires 'initial_portfolio'")
    defaults = MonteCarloParams(initial_portfolio=float(data["initial_portfolio"]))
    return MonteCarloParams(
        initial_portfolio=defaults.initial_portfolio,
        retirement_years=int(data.get("retirement_years", defaults.retirement_years)),
        allocation={k: float(v) for k, v in (data.get("allocation") or defaults.allocation).items()},
        assumptions=_parse_assumptions(data.get("assumptions") or {}),
        annual_withdrawal=float(data.get("annual_withdrawal", defaults.annual_withdrawal)),
        withdrawal_adjustment=WithdrawalAdjustment(data.get("withdrawal_adjustment", defaults.withdrawal_adjustment)),
        inflation_rate=float(data.get("inflation_rate", defaults.inflation_rate)),
        trials=int(data.get("trials", defaults.trials)),
        seed=data.get("seed"),
    )


def load_fire_scenarios(path: str | Path) -> Dict[str, ProjectionScenario]:
    return parse_fire_scenarios(_read_json(path))


def parse_fire_scenarios(data: Dict[str, Any]) -> Dict[str, ProjectionScenario]:
    return {
        name: ProjectionScenario(
            growth_rate=float(values["growth_rate"]),
            inflation_rate=float(values["inflation_rate"]),
        )
        for name, values in data.items()
    }


def load_monte_carlo_scenarios(path: str | Path) -> Dict[str, MonteCarloScenario]:
    return parse_monte_carlo_scenarios(_read_json(path))


def parse_monte_carlo_scenarios(data: Dict[str, Any]) -> Dict[str, MonteCarloScenario]:
    return {
        name: MonteCarloScenario(
            assumptions=_parse_assumptions(values.get("assumptions") or {}),
            inflation_rate=float(values["inflation_rate"]),
        )
        for name, values in data.items()
    }


def _parse_assumptions(data: Dict[str, Any]) -> Dict[str, AssetClassAssumption]:
    return {
        asset_class: AssetClassAssumption(
            mean_return=float(values["mean_return"]),
            volatility=float(values["volatility"]),
        )
        for asset_class, values in data.items()
    }


def _read_json(path: str | Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


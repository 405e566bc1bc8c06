from wealth_core.services.cashflow import aggregate_cash_flows  # noqa: F401
from wealth_core.services.fire import calculate_fire_metrics, project_fire  # noqa: F401
from wealth_core.services.historical import estimate_historical_returns  # noqa: F401
from wealth_core.services.performance import (  # noqa: F401
    build_performance_report,
    calculate_performance_for_period,
)
from wealth_core.services.rolling import calculate_rolling_periods  # noqa: F401
from wealth_core.services.simulator import run_monte_carlo, run_scenario_comparison  # noqa: F401

__all__ = [
    "aggregate_cash_flows",
    "calculate_performance_for_period",
    "build_performance_report",
    "calculate_rolling_periods",
    "run_monte_carlo",
    "run_scenario_comparison",
    "estimate_historical_returns",
    "project_fire",
    "calculate_fire_metrics",
]

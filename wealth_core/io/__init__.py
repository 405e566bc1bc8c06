from wealth_core.io.ledger import load_ledger  # noqa: F401
from wealth_core.io.snapshots import load_snapshots  # noqa: F401
from wealth_core.io.config import (  # noqa: F401
    load_fire_scenarios,
    load_monte_carlo_params,
    load_monte_carlo_scenarios,
    load_settings,
)

__all__ = [
    "load_ledger",
    "load_snapshots",
    "load_settings",
    "load_monte_carlo_params",
    "load_fire_scenarios",
    "load_monte_carlo_scenarios",
]

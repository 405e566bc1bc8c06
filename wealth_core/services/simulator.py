from __future__ import annotations

import dataclasses
import logging
import math
from typing import Dict, List, Optional

import numpy as np

from wealth_core.domain.models import (
    AssetClassAssumption,
    DistributionBin,
    FailureAnalysis,
    MonteCarloParams,
    MonteCarloScenario,
    PercentileBand,
    SimulationResult,
    SimulationRun,
    WithdrawalAdjustment,
)

logger = logging.getLogger(__name__)

PERCENTILES = (10, 25, 50, 75, 90)
DISTRIBUTION_BINS = 10
ALLOCATION_TOLERANCE = 1e-6

DEFAULT_MARKET_ASSUMPTIONS: Dict[str, AssetClassAssumption] = {
    "equity": AssetClassAssumption(mean_return=7.0, volatility=18.0),
    "bonds": AssetClassAssumption(mean_return=3.0, volatility=6.0),
    "realestate": AssetClassAssumption(mean_return=5.0, volatility=12.0),
    "commodity": AssetClassAssumption(mean_return=3.0, volatility=18.0),
}
DEFAULT_INFLATION_RATE = 2.5

DEFAULT_SCENARIOS: Dict[str, MonteCarloScenario] = {
    "bear": MonteCarloScenario(
        assumptions={
            "equity": AssetClassAssumption(4.0, 22.0),
            "bonds": AssetClassAssumption(2.0, 7.0),
            "realestate": AssetClassAssumption(2.5, 14.0),
            "commodity": AssetClassAssumption(1.0, 22.0),
        },
        inflation_rate=3.5,
    ),
    "base": MonteCarloScenario(assumptions=dict(DEFAULT_MARKET_ASSUMPTIONS), inflation_rate=DEFAULT_INFLATION_RATE),
    "bull": MonteCarloScenario(
        assumptions={
            "equity": AssetClassAssumption(10.0, 16.0),
            "bonds": AssetClassAssumption(4.0, 5.0),
            "realestate": AssetClassAssumption(7.0, 10.0),
            "commodity": AssetClassAssumption(5.0, 16.0),
        },
        inflation_rate=1.5,
    ),
}


def validate_params(params: MonteCarloParams) -> None:
    if params.trials < 1:
        raise ValueError("trials must be at least 1")
    if params.retirement_years < 0:
        raise ValueError("retirement_years must not be negative")
    total = sum(params.allocation.values())
    if abs(total - 100.0) > ALLOCATION_TOLERANCE:
        raise ValueError(f"Asset allocation must sum to 100%, got {total:g}%")
    if any(pct < 0 for pct in params.allocation.values()):
        raise ValueError("Asset allocation percentages must not be negative")


def _assumption_for(params: MonteCarloParams, asset_class: str) -> AssetClassAssumption:
    if asset_class in params.assumptions:
        return params.assumptions[asset_class]
    if asset_class in DEFAULT_MARKET_ASSUMPTIONS:
        return DEFAULT_MARKET_ASSUMPTIONS[asset_class]
    raise ValueError(f"No return assumption for asset class '{asset_class}'")


def box_muller(rng: np.random.Generator, size) -> np.ndarray:
    """
    Standard normal draws via z = sqrt(-2 ln u1) * cos(2 pi u2).
    ``1 - U[0,1)`` keeps u1 strictly positive so the log is finite.
    """
    u1 = 1.0 - rng.random(size)
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * math.pi * u2)


def _withdrawals(params: MonteCarloParams) -> np.ndarray:
    years = np.arange(1, params.retirement_years + 1, dtype=float)
    withdrawals = np.full(params.retirement_years, float(params.annual_withdrawal))
    if WithdrawalAdjustment(params.withdrawal_adjustment) is WithdrawalAdjustment.INFLATION:
        withdrawals *= np.power(1 + params.inflation_rate / 100, years)
    return withdrawals


def simulate_paths(params: MonteCarloParams, rng: Optional[np.random.Generator] = None) -> List[SimulationRun]:
    """
    Vectorized across trials, stepping year by year: draw one return per
    asset class, weight by allocation, grow, then withdraw. A trial fails the
    first year its value reaches <= 0 and its path stops there.
    """
    validate_params(params)
    rng = rng or np.random.default_rng(params.seed)

    classes = [c for c, pct in params.allocation.items() if pct > 0]
    weights = np.array([params.allocation[c] / 100 for c in classes])
    means = np.array([_assumption_for(params, c).mean_return for c in classes])
    vols = np.array([_assumption_for(params, c).volatility for c in classes])
    withdrawals = _withdrawals(params)

    n, horizon = params.trials, params.retirement_years
    wealth = np.zeros((n, horizon + 1))
    wealth[:, 0] = params.initial_portfolio
    alive = np.ones(n, dtype=bool)
    failure_year = np.zeros(n, dtype=int)

    for year in range(1, horizon + 1):
        class_returns = means + box_muller(rng, (n, len(classes))) * vols
        portfolio_return = class_returns @ weights if len(classes) else np.zeros(n)
        value = wealth[:, year - 1] * (1 + portfolio_return / 100) - withdrawals[year - 1]

        failed_now = alive & (value <= 0)
        failure_year[failed_now] = year
        alive &= ~failed_now
        wealth[:, year] = np.where(alive, value, 0.0)

    runs = []
    for i in range(n):
        if alive[i]:
            runs.append(
                SimulationRun(trial_id=i, success=True, final_value=float(wealth[i, -1]), path=wealth[i].tolist())
            )
        else:
            fy = int(failure_year[i])
            runs.append(
                SimulationRun(
                    trial_id=i,
                    success=False,
                    final_value=0.0,
                    path=wealth[i, :fy].tolist(),
                    failure_year=fy,
                )
            )
    return runs


def calculate_percentiles(runs: List[SimulationRun], years: int) -> List[PercentileBand]:
    """
    Per-year bands across all trials; a failed trial counts as 0 from its
    failure year on. Lower nearest-rank on the sorted values.
    """
    matrix = np.zeros((len(runs), years + 1))
    for i, run in enumerate(runs):
        matrix[i, : len(run.path)] = run.path
    matrix.sort(axis=0)

    n = len(runs)
    bands = []
    for year in range(years + 1):
        column = matrix[:, year]
        p = {q: float(column[min(int(math.floor(n * q / 100)), n - 1)]) for q in PERCENTILES}
        bands.append(PercentileBand(year=year, p10=p[10], p25=p[25], p50=p[50], p75=p[75], p90=p[90]))
    return bands


def create_distribution(runs: List[SimulationRun], bins: int = DISTRIBUTION_BINS) -> List[DistributionBin]:
    """Equal-width histogram of final values (failed trials at 0)."""
    finals = np.array([run.final_value for run in runs], dtype=float)
    lo, hi = float(finals.min()), float(finals.max())
    width = (hi - lo) / bins

    if width > 0:
        idx = np.minimum(((finals - lo) // width).astype(int), bins - 1)
    else:
        # degenerate range: everything lands in the closed last bin
        idx = np.full(len(finals), bins - 1)
    counts = np.bincount(idx, minlength=bins)

    return [
        DistributionBin(
            range_start=lo + i * width,
            range_end=lo + (i + 1) * width,
            count=int(counts[i]),
            percentage=float(counts[i]) / len(runs) * 100,
        )
        for i in range(bins)
    ]


def run_monte_carlo(params: MonteCarloParams, rng: Optional[np.random.Generator] = None) -> SimulationResult:
    runs = simulate_paths(params, rng)
    successes = [r for r in runs if r.success]
    failures = [r for r in runs if not r.success]

    finals = sorted(r.final_value for r in successes)
    median_final = finals[len(finals) // 2] if finals else None

    failure_analysis = None
    if failures:
        years = sorted(r.failure_year for r in failures)
        failure_analysis = FailureAnalysis(
            average_failure_year=float(np.mean(years)),
            median_failure_year=years[len(years) // 2],
        )

    result = SimulationResult(
        params=params,
        success_rate=len(successes) / len(runs) * 100,
        success_count=len(successes),
        failure_count=len(failures),
        median_final_value=median_final,
        percentiles=calculate_percentiles(runs, params.retirement_years),
        failure_analysis=failure_analysis,
        distribution=create_distribution(runs),
        runs=runs,
    )
    logger.debug(
        "Monte Carlo: %d trials over %d years, success rate %.1f%%",
        len(runs),
        params.retirement_years,
        result.success_rate,
    )
    return result


def params_for_scenario(params: MonteCarloParams, scenario: MonteCarloScenario) -> MonteCarloParams:
    assumptions = dict(params.assumptions)
    assumptions.update(scenario.assumptions)
    return dataclasses.replace(
        params,
        allocation=dict(params.allocation),
        assumptions=assumptions,
        inflation_rate=scenario.inflation_rate,
    )


def run_scenario_comparison(
    params: MonteCarloParams,
    scenarios: Optional[Dict[str, MonteCarloScenario]] = None,
) -> Dict[str, SimulationResult]:
    """Run the same plan under each named market scenario (bear/base/bull by default)."""
    scenarios = scenarios or DEFAULT_SCENARIOS
    return {name: run_monte_carlo(params_for_scenario(params, scenario)) for name, scenario in scenarios.items()}

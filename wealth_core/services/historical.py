from __future__ import annotations

import dataclasses
import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from wealth_core.domain.models import (
    AssetClassAssumption,
    AssetClassStats,
    HistoricalReturns,
    MonteCarloParams,
    Snapshot,
)
from wealth_core.services.risk import OUTLIER_THRESHOLD_PCT
from wealth_core.services.simulator import DEFAULT_MARKET_ASSUMPTIONS

logger = logging.getLogger(__name__)

MIN_HISTORY_MONTHS = 24
MIN_CLASS_POINTS = 12
DEFAULT_CLASSES = ("equity", "bonds")


def asset_class_returns(snapshots: Sequence[Snapshot], asset_class: str) -> List[float]:
    """
    Month-over-month percent change of one asset class. Months where the
    class is absent on either side are skipped; outliers are dropped.
    """
    out = []
    for prev, curr in zip(snapshots, snapshots[1:]):
        prev_value = prev.by_asset_class.get(asset_class, 0.0)
        curr_value = curr.by_asset_class.get(asset_class, 0.0)
        if prev_value == 0 or curr_value == 0:
            continue
        change = (curr_value - prev_value) / prev_value * 100
        if abs(change) < OUTLIER_THRESHOLD_PCT:
            out.append(change)
    return out


def annualize_mean(monthly: Sequence[float]) -> float:
    return (math.pow(1 + float(np.mean(monthly)) / 100, 12) - 1) * 100


def annualize_volatility(monthly: Sequence[float]) -> float:
    return float(np.std(monthly)) * math.sqrt(12)


def estimate_historical_returns(
    snapshots: Sequence[Snapshot],
    asset_classes: Sequence[str] = DEFAULT_CLASSES,
    min_months: int = MIN_HISTORY_MONTHS,
    min_points: int = MIN_CLASS_POINTS,
) -> Optional[HistoricalReturns]:
    """
    Per-class annualized mean/volatility from the user's own history.

    Returns None when there are fewer than ``min_months`` real snapshots or
    no class reaches ``min_points`` usable monthly changes. A class short of
    ``min_points`` falls back to the market default and is flagged.
    """
    real = sorted((s for s in snapshots if not s.is_dummy), key=lambda s: s.key)
    if len(real) < min_months:
        logger.debug("Historical returns: %d months of history, need %d", len(real), min_months)
        return None

    monthly = {c: asset_class_returns(real, c) for c in asset_classes}
    if all(len(r) < min_points for r in monthly.values()):
        logger.debug("Historical returns: no asset class has %d usable months", min_points)
        return None

    classes: Dict[str, AssetClassStats] = {}
    for asset_class, returns in monthly.items():
        if len(returns) >= min_points:
            classes[asset_class] = AssetClassStats(
                mean=annualize_mean(returns),
                volatility=annualize_volatility(returns),
                monthly_returns=returns,
            )
            continue
        default = DEFAULT_MARKET_ASSUMPTIONS.get(asset_class)
        if default is None:
            logger.debug("Historical returns: no market default for '%s', skipped", asset_class)
            continue
        classes[asset_class] = AssetClassStats(
            mean=default.mean_return,
            volatility=default.volatility,
            monthly_returns=returns,
            is_default=True,
        )

    return HistoricalReturns(
        classes=classes,
        available_months=len(real),
        start=real[0].key,
        end=real[-1].key,
    )


def apply_historical_returns(params: MonteCarloParams, historical: Optional[HistoricalReturns]) -> MonteCarloParams:
    """Copy of ``params`` with return assumptions replaced by the estimated ones."""
    if historical is None:
        return params
    assumptions = dict(params.assumptions)
    for asset_class, stats in historical.classes.items():
        assumptions[asset_class] = AssetClassAssumption(mean_return=stats.mean, volatility=stats.volatility)
    return dataclasses.replace(params, assumptions=assumptions)

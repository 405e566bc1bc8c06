from __future__ import annotations

import dataclasses
import datetime as dt
import enum
from typing import Dict, List, Optional, Tuple

MonthKey = Tuple[int, int]


def month_key(date: dt.date) -> MonthKey:
    return (date.year, date.month)


def months_between(later: MonthKey, earlier: MonthKey) -> int:
    """Whole calendar months from ``earlier`` to ``later`` (0 for the same month)."""
    return (later[0] - earlier[0]) * 12 + (later[1] - earlier[1])


def month_label(key: MonthKey) -> str:
    """'MM/YY' label used in drawdown periods."""
    return f"{key[1]:02d}/{key[0] % 100:02d}"


# -------------------------------
# Inputs
# -------------------------------


@dataclasses.dataclass(frozen=True)
class Snapshot:
    year: int
    month: int
    total_net_worth: float
    by_asset_class: Dict[str, float] = dataclasses.field(default_factory=dict)
    is_dummy: bool = False

    @property
    def key(self) -> MonthKey:
        return (self.year, self.month)

    @property
    def date(self) -> dt.date:
        return dt.date(self.year, self.month, 1)


@dataclasses.dataclass(frozen=True)
class Transaction:
    date: dt.date
    amount: float  # income positive, every expense type negative
    type: str  # "income", "fixed", "variable" or "debt"
    category_id: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class CashFlowRecord:
    month: dt.date
    income: float
    expenses: float
    dividend_income: float = 0.0

    @property
    def net_cash_flow(self) -> float:
        # dividends are portfolio return, never an external contribution
        return self.income - self.expenses

    @property
    def key(self) -> MonthKey:
        return month_key(self.month)


class TimePeriod(str, enum.Enum):
    YTD = "YTD"
    ONE_YEAR = "1Y"
    THREE_YEAR = "3Y"
    FIVE_YEAR = "5Y"
    ALL = "ALL"
    CUSTOM = "CUSTOM"


# -------------------------------
# Performance / risk results
# -------------------------------


@dataclasses.dataclass(frozen=True)
class DrawdownAnalysis:
    max_drawdown: Optional[float] = None  # percent, always <= 0
    peak: Optional[MonthKey] = None
    trough: Optional[MonthKey] = None
    recovery: Optional[MonthKey] = None
    drawdown_duration: Optional[int] = None  # months, peak to recovery inclusive
    recovery_time: Optional[int] = None  # months, trough to recovery inclusive
    is_recovered: bool = False

    @property
    def trough_label(self) -> Optional[str]:
        return month_label(self.trough) if self.trough else None

    @property
    def drawdown_period(self) -> Optional[str]:
        return _period_label(self.peak, self.recovery, self.is_recovered)

    @property
    def recovery_period(self) -> Optional[str]:
        return _period_label(self.trough, self.recovery, self.is_recovered)


def _period_label(start: Optional[MonthKey], end: Optional[MonthKey], closed: bool) -> Optional[str]:
    if start is None:
        return None
    if closed and end is not None:
        return f"{month_label(start)} - {month_label(end)}"
    return f"{month_label(start)} - Present"


@dataclasses.dataclass
class PerformanceMetrics:
    time_period: TimePeriod
    start_date: Optional[dt.date]
    end_date: Optional[dt.date]
    start_net_worth: Optional[float] = None
    end_net_worth: Optional[float] = None
    cash_flows: List[CashFlowRecord] = dataclasses.field(default_factory=list)

    roi: Optional[float] = None
    cagr: Optional[float] = None
    time_weighted_return: Optional[float] = None
    money_weighted_return: Optional[float] = None
    sharpe_ratio: Optional[float] = None
    volatility: Optional[float] = None
    max_drawdown: Optional[float] = None
    drawdown_duration: Optional[int] = None
    recovery_time: Optional[int] = None
    max_drawdown_label: Optional[str] = None
    drawdown_period: Optional[str] = None
    recovery_period: Optional[str] = None

    risk_free_rate: float = 2.5
    dividend_category_id: Optional[str] = None
    total_contributions: Optional[float] = None
    total_withdrawals: Optional[float] = None
    net_cash_flow: Optional[float] = None
    total_income: Optional[float] = None
    total_expenses: Optional[float] = None
    total_dividend_income: Optional[float] = None
    number_of_months: Optional[int] = None

    has_insufficient_data: bool = False
    error_message: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class RollingPeriod:
    period_start: dt.date
    period_end: dt.date
    cagr: Optional[float]
    volatility: Optional[float]
    sharpe_ratio: Optional[float]


@dataclasses.dataclass
class PerformanceReport:
    ytd: PerformanceMetrics
    one_year: PerformanceMetrics
    three_year: PerformanceMetrics
    five_year: PerformanceMetrics
    all_time: PerformanceMetrics
    rolling_12m: List[RollingPeriod]
    rolling_36m: List[RollingPeriod]
    snapshot_count: int
    last_updated: dt.datetime


@dataclasses.dataclass(frozen=True)
class PerformanceChartPoint:
    month: dt.date
    net_worth: float
    contributions: float  # cumulative
    returns: float


@dataclasses.dataclass
class MonthlyReturnRow:
    year: int
    returns: Dict[int, Optional[float]]  # month (1-12) -> percent


@dataclasses.dataclass(frozen=True)
class UnderwaterPoint:
    month: dt.date
    drawdown: float  # percent, always <= 0


# -------------------------------
# Monte Carlo
# -------------------------------


class WithdrawalAdjustment(str, enum.Enum):
    INFLATION = "inflation"
    FIXED = "fixed"


@dataclasses.dataclass(frozen=True)
class AssetClassAssumption:
    mean_return: float  # percent per year
    volatility: float  # percent per year


@dataclasses.dataclass(frozen=True)
class MonteCarloParams:
    initial_portfolio: float
    retirement_years: int = 30
    allocation: Dict[str, float] = dataclasses.field(
        default_factory=lambda: {"equity": 60.0, "bonds": 40.0}
    )
    assumptions: Dict[str, AssetClassAssumption] = dataclasses.field(default_factory=dict)
    annual_withdrawal: float = 0.0
    withdrawal_adjustment: WithdrawalAdjustment = WithdrawalAdjustment.INFLATION
    inflation_rate: float = 2.5
    trials: int = 10000
    seed: Optional[int] = None


@dataclasses.dataclass
class SimulationRun:
    trial_id: int
    success: bool
    final_value: float
    path: List[float]  # index == year, truncated at failure
    failure_year: Optional[int] = None


@dataclasses.dataclass(frozen=True)
class PercentileBand:
    year: int
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float


@dataclasses.dataclass(frozen=True)
class FailureAnalysis:
    average_failure_year: float
    median_failure_year: int


@dataclasses.dataclass(frozen=True)
class DistributionBin:
    range_start: float
    range_end: float
    count: int
    percentage: float


@dataclasses.dataclass
class SimulationResult:
    params: MonteCarloParams
    success_rate: float  # percent
    success_count: int
    failure_count: int
    median_final_value: Optional[float]
    percentiles: List[PercentileBand]
    failure_analysis: Optional[FailureAnalysis]
    distribution: List[DistributionBin]
    runs: List[SimulationRun]


@dataclasses.dataclass
class AssetClassStats:
    mean: float
    volatility: float
    monthly_returns: List[float]
    is_default: bool = False


@dataclasses.dataclass
class HistoricalReturns:
    classes: Dict[str, AssetClassStats]
    available_months: int
    start: MonthKey
    end: MonthKey


# -------------------------------
# FIRE
# -------------------------------


@dataclasses.dataclass(frozen=True)
class ProjectionScenario:
    growth_rate: float  # percent
    inflation_rate: float  # percent


@dataclasses.dataclass
class FIREProjectionYear:
    year: int
    calendar_year: int
    net_worth: Dict[str, float]
    expenses: Dict[str, float]
    fire_number: Dict[str, Optional[float]]
    fire_reached: Dict[str, bool]


@dataclasses.dataclass
class FIREProjection:
    yearly: List[FIREProjectionYear]
    years_to_fire: Dict[str, Optional[int]]
    annual_savings: float
    initial_net_worth: float
    initial_expenses: float
    withdrawal_rate: float
    scenarios: Dict[str, ProjectionScenario]


@dataclasses.dataclass(frozen=True)
class FIREMetrics:
    current_net_worth: float
    annual_expenses: float
    withdrawal_rate: float
    fire_number: Optional[float]
    progress_to_fi: Optional[float]
    annual_allowance: float
    monthly_allowance: float
    daily_allowance: float
    current_withdrawal_rate: Optional[float]
    years_of_expenses: Optional[float]


@dataclasses.dataclass(frozen=True)
class PlannedFIREMetrics:
    planned_annual_expenses: float
    planned_fire_number: Optional[float]
    planned_progress_to_fi: Optional[float]


# -------------------------------
# Settings
# -------------------------------


@dataclasses.dataclass(frozen=True)
class MonteCarloScenario:
    assumptions: Dict[str, AssetClassAssumption]
    inflation_rate: float


@dataclasses.dataclass(frozen=True)
class AnalyticsSettings:
    risk_free_rate: float = 2.5
    dividend_category_id: Optional[str] = None
    withdrawal_rate: float = 4.0
    planned_annual_expenses: Optional[float] = None
    fire_scenarios: Optional[Dict[str, ProjectionScenario]] = None
    monte_carlo_scenarios: Optional[Dict[str, MonteCarloScenario]] = None



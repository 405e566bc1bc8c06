from wealth_core.domain.models import (  # noqa: F401
    AnalyticsSettings,
    AssetClassAssumption,
    AssetClassStats,
    CashFlowRecord,
    DistributionBin,
    DrawdownAnalysis,
    FailureAnalysis,
    FIREMetrics,
    FIREProjection,
    FIREProjectionYear,
    HistoricalReturns,
    MonteCarloParams,
    MonteCarloScenario,
    MonthlyReturnRow,
    PercentileBand,
    PerformanceChartPoint,
    PerformanceMetrics,
    PerformanceReport,
    PlannedFIREMetrics,
    ProjectionScenario,
    RollingPeriod,
    SimulationResult,
    SimulationRun,
    Snapshot,
    TimePeriod,
    Transaction,
    UnderwaterPoint,
    WithdrawalAdjustment,
)

__all__ = [
    "AnalyticsSettings",
    "AssetClassAssumption",
    "AssetClassStats",
    "CashFlowRecord",
    "DistributionBin",
    "DrawdownAnalysis",
    "FailureAnalysis",
    "FIREMetrics",
    "FIREProjection",
    "FIREProjectionYear",
    "HistoricalReturns",
    "MonteCarloParams",
    "MonteCarloScenario",
    "MonthlyReturnRow",
    "PercentileBand",
    "PerformanceChartPoint",
    "PerformanceMetrics",
    "PerformanceReport",
    "PlannedFIREMetrics",
    "ProjectionScenario",
    "RollingPeriod",
    "SimulationResult",
    "SimulationRun",
    "Snapshot",
    "TimePeriod",
    "Transaction",
    "UnderwaterPoint",
    "WithdrawalAdjustment",
]

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from wealth_core.domain.models import (
    AnalyticsSettings,
    AssetClassAssumption,
    MonteCarloParams,
    PerformanceMetrics,
    SimulationResult,
    Snapshot,
    TimePeriod,
    Transaction,
    WithdrawalAdjustment,
)
from wealth_core.io import config as config_io
from wealth_core.io import ledger as ledger_io
from wealth_core.io import snapshots as snapshot_io
from wealth_core.services import fire, historical, performance, rolling, series, simulator
from wealth_core.services.cashflow import aggregate_cash_flows

app = typer.Typer(help="Net-worth performance, risk and retirement analytics.")
console = Console(stderr=True)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _to_jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (dt.date, dt.datetime)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(v) for v in obj]
    return obj


def _save_json(path: Path, payload):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def _emit(payload, out: Optional[Path], label: str) -> None:
    if out:
        _save_json(out, payload)
        typer.echo(f"{label} written to {out}")
    else:
        typer.echo(json.dumps(payload, indent=2))


def _simulation_to_json(result: SimulationResult, include_runs: bool = False) -> dict:
    payload = _to_jsonable(result)
    if not include_runs:
        payload.pop("runs")
    return payload


def _load_inputs(snapshots: Path, ledger: Optional[Path]) -> tuple[List[Snapshot], List[Transaction]]:
    try:
        snaps = snapshot_io.load_snapshots(snapshots)
        transactions = ledger_io.load_ledger(ledger) if ledger else []
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    return snaps, transactions


def _load_settings(
    settings: Optional[Path],
    risk_free_rate: Optional[float] = None,
    dividend_category: Optional[str] = None,
) -> AnalyticsSettings:
    try:
        base = config_io.load_settings(settings) if settings else AnalyticsSettings()
    except (FileNotFoundError, ValueError, KeyError, TypeError) as exc:
        raise typer.BadParameter(f"Invalid settings file {settings}: {exc}") from exc
    overrides = {}
    if risk_free_rate is not None:
        overrides["risk_free_rate"] = risk_free_rate
    if dividend_category is not None:
        overrides["dividend_category_id"] = dividend_category
    return dataclasses.replace(base, **overrides)


def _fmt(value: Optional[float], suffix: str = "%") -> str:
    return "n/a" if value is None else f"{value:,.2f}{suffix}"


def _print_metrics(metrics: PerformanceMetrics) -> None:
    table = Table(title=f"Performance ({metrics.time_period.value})")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    if metrics.has_insufficient_data:
        table.add_row("Status", metrics.error_message or "Insufficient data")
        console.print(table)
        return
    table.add_row("Period", f"{metrics.start_date} .. {metrics.end_date} ({metrics.number_of_months} months)")
    table.add_row("Net worth", f"{metrics.start_net_worth:,.0f} -> {metrics.end_net_worth:,.0f}")
    table.add_row("ROI", _fmt(metrics.roi))
    table.add_row("CAGR", _fmt(metrics.cagr))
    table.add_row("TWR", _fmt(metrics.time_weighted_return))
    table.add_row("IRR", _fmt(metrics.money_weighted_return))
    table.add_row("Volatility", _fmt(metrics.volatility))
    table.add_row("Sharpe", _fmt(metrics.sharpe_ratio, ""))
    table.add_row("Max drawdown", _fmt(metrics.max_drawdown))
    table.add_row("Drawdown period", metrics.drawdown_period or "n/a")
    table.add_row("Recovery period", metrics.recovery_period or "n/a")
    console.print(table)


@app.command("performance")
def performance_cmd(
    snapshots: Path = typer.Option(..., help="CSV with year,month,total_net_worth[,<asset class>...]"),
    ledger: Optional[Path] = typer.Option(None, help="CSV ledger with date,amount,type[,category_id]"),
    period: TimePeriod = typer.Option(TimePeriod.ALL, help="YTD|1Y|3Y|5Y|ALL|CUSTOM"),
    start: Optional[dt.datetime] = typer.Option(None, formats=["%Y-%m-%d"], help="Custom period start"),
    end: Optional[dt.datetime] = typer.Option(None, formats=["%Y-%m-%d"], help="Custom period end"),
    report: bool = typer.Option(False, help="Emit every period plus rolling 12M/36M windows"),
    charts: bool = typer.Option(False, help="Include chart series (contributions, heat map, underwater)"),
    settings: Optional[Path] = typer.Option(None, help="Settings JSON"),
    risk_free_rate: Optional[float] = typer.Option(None, help="Risk-free rate in percent"),
    dividend_category: Optional[str] = typer.Option(None, help="Category id of dividend income"),
    as_of: Optional[dt.datetime] = typer.Option(None, formats=["%Y-%m-%d"], help="Reference date (default today)"),
    out: Optional[Path] = typer.Option(None, help="Output path for metrics JSON"),
):
    """Return and risk metrics for a period."""
    snaps, transactions = _load_inputs(snapshots, ledger)
    conf = _load_settings(settings, risk_free_rate, dividend_category)
    now = as_of.date() if as_of else dt.date.today()

    if period is TimePeriod.CUSTOM and (start is None or end is None):
        raise typer.BadParameter("CUSTOM period requires --start and --end")

    if report:
        payload = _to_jsonable(performance.build_performance_report(snaps, transactions, conf, now=now))
    else:
        cash_flows = aggregate_cash_flows(transactions, conf.dividend_category_id)
        metrics = performance.calculate_performance_for_period(
            snaps,
            cash_flows,
            period,
            risk_free_rate=conf.risk_free_rate,
            now=now,
            custom_start=start.date() if start else None,
            custom_end=end.date() if end else None,
            dividend_category_id=conf.dividend_category_id,
        )
        if out:
            _print_metrics(metrics)
        payload = _to_jsonable(metrics)

    if charts:
        cash_flows = aggregate_cash_flows(transactions, conf.dividend_category_id)
        real = [s for s in snaps if not s.is_dummy]
        payload["charts"] = _to_jsonable(
            {
                "performance": series.performance_chart_data(real, cash_flows),
                "heatmap": series.monthly_return_heatmap(real, cash_flows),
                "underwater": series.underwater_series(real, cash_flows),
            }
        )
    _emit(payload, out, "Performance metrics")


@app.command("rolling")
def rolling_cmd(
    snapshots: Path = typer.Option(..., help="Snapshot CSV"),
    ledger: Optional[Path] = typer.Option(None, help="Ledger CSV"),
    window: int = typer.Option(12, help="Window width in months"),
    settings: Optional[Path] = typer.Option(None, help="Settings JSON"),
    risk_free_rate: Optional[float] = typer.Option(None, help="Risk-free rate in percent"),
    dividend_category: Optional[str] = typer.Option(None, help="Category id of dividend income"),
    out: Optional[Path] = typer.Option(None, help="Output path for rolling JSON"),
):
    """CAGR, volatility and Sharpe over a sliding window."""
    if window < 1:
        raise typer.BadParameter("--window must be positive")
    snaps, transactions = _load_inputs(snapshots, ledger)
    conf = _load_settings(settings, risk_free_rate, dividend_category)
    cash_flows = aggregate_cash_flows(transactions, conf.dividend_category_id)
    periods = rolling.calculate_rolling_periods(snaps, cash_flows, window, conf.risk_free_rate)
    _emit({"window_months": window, "periods": _to_jsonable(periods)}, out, "Rolling periods")


@app.command("historical")
def historical_cmd(
    snapshots: Path = typer.Option(..., help="Snapshot CSV with per-asset-class columns"),
    asset_class: List[str] = typer.Option(["equity", "bonds"], help="Asset classes to estimate"),
):
    """Estimate per-asset-class return assumptions from snapshot history."""
    snaps, _ = _load_inputs(snapshots, None)
    estimate = historical.estimate_historical_returns(snaps, asset_class)
    if estimate is None:
        typer.echo(json.dumps({"historical": None, "reason": "insufficient history, using market defaults"}))
        return
    typer.echo(json.dumps(_to_jsonable(estimate), indent=2))


def _build_params(
    params_file: Optional[Path],
    initial_portfolio: Optional[float],
    years: int,
    withdrawal: float,
    withdrawal_adjustment: WithdrawalAdjustment,
    equity_pct: float,
    bonds_pct: float,
    equity_return: float,
    equity_vol: float,
    bonds_return: float,
    bonds_vol: float,
    inflation: float,
    trials: int,
    seed: Optional[int],
) -> MonteCarloParams:
    if params_file:
        try:
            return config_io.load_monte_carlo_params(params_file)
        except (FileNotFoundError, ValueError, KeyError) as exc:
            raise typer.BadParameter(str(exc)) from exc
    if initial_portfolio is None:
        raise typer.BadParameter("Provide either --params or --initial-portfolio")
    return MonteCarloParams(
        initial_portfolio=initial_portfolio,
        retirement_years=years,
        allocation={"equity": equity_pct, "bonds": bonds_pct},
        assumptions={
            "equity": AssetClassAssumption(equity_return, equity_vol),
            "bonds": AssetClassAssumption(bonds_return, bonds_vol),
        },
        annual_withdrawal=withdrawal,
        withdrawal_adjustment=withdrawal_adjustment,
        inflation_rate=inflation,
        trials=trials,
        seed=seed,
    )


@app.command("simulate")
def simulate_cmd(
    params: Optional[Path] = typer.Option(None, help="Monte Carlo parameters JSON"),
    initial_portfolio: Optional[float] = typer.Option(None, help="Starting portfolio value"),
    years: int = typer.Option(30, help="Withdrawal years to simulate"),
    withdrawal: float = typer.Option(0.0, help="Annual withdrawal"),
    withdrawal_adjustment: WithdrawalAdjustment = typer.Option(WithdrawalAdjustment.INFLATION, help="inflation|fixed"),
    equity_pct: float = typer.Option(60.0, help="Equity allocation percent"),
    bonds_pct: float = typer.Option(40.0, help="Bond allocation percent"),
    equity_return: float = typer.Option(7.0, help="Equity mean annual return percent"),
    equity_vol: float = typer.Option(18.0, help="Equity annual volatility percent"),
    bonds_return: float = typer.Option(3.0, help="Bond mean annual return percent"),
    bonds_vol: float = typer.Option(6.0, help="Bond annual volatility percent"),
    inflation: float = typer.Option(2.5, help="Annual inflation percent"),
    trials: int = typer.Option(10000, help="Number of Monte Carlo trials"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
    snapshots: Optional[Path] = typer.Option(None, help="Snapshot CSV for --historical"),
    use_historical: bool = typer.Option(False, "--historical", help="Derive return assumptions from snapshots"),
    scenarios: bool = typer.Option(False, help="Run bear/base/bull scenario comparison"),
    scenarios_file: Optional[Path] = typer.Option(None, help="Monte Carlo scenarios JSON"),
    settings: Optional[Path] = typer.Option(None, help="Settings JSON (Monte Carlo scenario set)"),
    include_runs: bool = typer.Option(False, help="Include every trial path in the output"),
    out: Optional[Path] = typer.Option(None, help="Output path for simulation JSON"),
):
    """Monte Carlo retirement withdrawal simulation."""
    mc_params = _build_params(
        params,
        initial_portfolio,
        years,
        withdrawal,
        withdrawal_adjustment,
        equity_pct,
        bonds_pct,
        equity_return,
        equity_vol,
        bonds_return,
        bonds_vol,
        inflation,
        trials,
        seed,
    )
    if use_historical:
        if not snapshots:
            raise typer.BadParameter("--historical requires --snapshots")
        snaps, _ = _load_inputs(snapshots, None)
        estimate = historical.estimate_historical_returns(snaps, list(mc_params.allocation))
        if estimate is None:
            console.print("[yellow]Not enough history; using market default assumptions.[/yellow]")
        mc_params = historical.apply_historical_returns(mc_params, estimate)

    scenario_set = None
    if scenarios:
        try:
            if scenarios_file:
                scenario_set = config_io.load_monte_carlo_scenarios(scenarios_file)
            else:
                scenario_set = _load_settings(settings).monte_carlo_scenarios
        except (FileNotFoundError, ValueError, KeyError) as exc:
            raise typer.BadParameter(str(exc)) from exc

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as progress:
            progress.add_task("Running simulation...", total=None)
            if scenarios:
                results = simulator.run_scenario_comparison(mc_params, scenario_set)
                payload = {name: _simulation_to_json(r, include_runs) for name, r in results.items()}
            else:
                payload = _simulation_to_json(simulator.run_monte_carlo(mc_params), include_runs)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    _emit(payload, out, "Simulation")


@app.command("fire")
def fire_cmd(
    net_worth: float = typer.Option(..., help="Current net worth"),
    expenses: float = typer.Option(..., help="Annual expenses"),
    savings: float = typer.Option(0.0, help="Annual savings added each year"),
    withdrawal_rate: Optional[float] = typer.Option(None, help="Safe withdrawal rate percent (default from settings, 4)"),
    years: int = typer.Option(fire.DEFAULT_MAX_YEARS, help="Projection horizon in years"),
    start_year: Optional[int] = typer.Option(None, help="Calendar year of year 0 (default current)"),
    planned_expenses: Optional[float] = typer.Option(None, help="Planned annual expenses in retirement"),
    scenarios_file: Optional[Path] = typer.Option(None, help="FIRE scenarios JSON"),
    settings: Optional[Path] = typer.Option(None, help="Settings JSON (withdrawal rate, planned expenses, scenarios)"),
    out: Optional[Path] = typer.Option(None, help="Output path for projection JSON"),
):
    """FIRE metrics and bear/base/bull growth projection."""
    conf = _load_settings(settings)
    rate = withdrawal_rate if withdrawal_rate is not None else conf.withdrawal_rate
    planned = planned_expenses if planned_expenses is not None else conf.planned_annual_expenses

    try:
        scenario_set = config_io.load_fire_scenarios(scenarios_file) if scenarios_file else conf.fire_scenarios
        projection = fire.project_fire(
            net_worth, expenses, savings, rate, scenario_set, max_years=years, start_year=start_year
        )
    except (FileNotFoundError, ValueError, KeyError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    payload = {
        "metrics": _to_jsonable(fire.calculate_fire_metrics(net_worth, expenses, rate)),
        "projection": _to_jsonable(projection),
    }
    if planned is not None:
        payload["planned"] = _to_jsonable(fire.calculate_planned_fire_metrics(net_worth, planned, rate))
    _emit(payload, out, "FIRE projection")


if __name__ == "__main__":
    app()

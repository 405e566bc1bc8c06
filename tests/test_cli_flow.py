import json
from pathlib import Path

from typer.testing import CliRunner

from wealth_core.cli import app


runner = CliRunner()
DATA = Path(__file__).parent / "data"


def _inputs(tmp_path: Path):
    snapshots_path = tmp_path / "snapshots.csv"
    ledger_path = tmp_path / "ledger.csv"
    snapshots_path.write_text((DATA / "snapshots.csv").read_text())
    ledger_path.write_text((DATA / "ledger.csv").read_text())
    return snapshots_path, ledger_path


def test_cli_performance_for_period(tmp_path: Path):
    snapshots_path, ledger_path = _inputs(tmp_path)
    result = runner.invoke(
        app,
        [
            "performance",
            "--snapshots",
            str(snapshots_path),
            "--ledger",
            str(ledger_path),
            "--period",
            "1Y",
            "--as-of",
            "2024-12-20",
            "--dividend-category",
            "dividends",
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["time_period"] == "1Y"
    assert payload["number_of_months"] == 12
    assert payload["start_date"] == "2024-01-01"
    assert payload["has_insufficient_data"] is False
    assert payload["net_cash_flow"] == 24000.0


def test_cli_performance_report_with_charts(tmp_path: Path):
    snapshots_path, ledger_path = _inputs(tmp_path)
    out_path = tmp_path / "report.json"
    result = runner.invoke(
        app,
        [
            "performance",
            "--snapshots",
            str(snapshots_path),
            "--ledger",
            str(ledger_path),
            "--report",
            "--charts",
            "--as-of",
            "2024-12-20",
            "--out",
            str(out_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(out_path.read_text())
    assert payload["snapshot_count"] == 36
    assert len(payload["rolling_12m"]) == 24
    assert payload["all_time"]["number_of_months"] == 36
    assert len(payload["charts"]["underwater"]) == 36
    assert [row["year"] for row in payload["charts"]["heatmap"]] == [2022, 2023, 2024]


def test_cli_custom_period_requires_bounds(tmp_path: Path):
    snapshots_path, _ = _inputs(tmp_path)
    result = runner.invoke(app, ["performance", "--snapshots", str(snapshots_path), "--period", "CUSTOM"])
    assert result.exit_code != 0


def test_cli_rolling(tmp_path: Path):
    snapshots_path, ledger_path = _inputs(tmp_path)
    out_path = tmp_path / "rolling.json"
    result = runner.invoke(
        app,
        [
            "rolling",
            "--snapshots",
            str(snapshots_path),
            "--ledger",
            str(ledger_path),
            "--window",
            "24",
            "--out",
            str(out_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(out_path.read_text())
    assert payload["window_months"] == 24
    assert len(payload["periods"]) == 12
    assert payload["periods"][0]["period_start"] == "2022-01-01"


def test_cli_simulate_and_scenarios(tmp_path: Path):
    sim_path = tmp_path / "sim.json"
    result = runner.invoke(
        app,
        [
            "simulate",
            "--initial-portfolio",
            "1000000",
            "--years",
            "10",
            "--withdrawal",
            "40000",
            "--withdrawal-adjustment",
            "fixed",
            "--equity-vol",
            "0",
            "--bonds-vol",
            "0",
            "--trials",
            "200",
            "--seed",
            "1",
            "--out",
            str(sim_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(sim_path.read_text())
    assert payload["success_rate"] == 100.0
    assert len(payload["percentiles"]) == 11
    assert "runs" not in payload
    assert payload["params"]["withdrawal_adjustment"] == "fixed"

    scenarios_path = tmp_path / "scenarios.json"
    result = runner.invoke(
        app,
        [
            "simulate",
            "--initial-portfolio",
            "1000000",
            "--withdrawal",
            "40000",
            "--trials",
            "100",
            "--seed",
            "2",
            "--scenarios",
            "--out",
            str(scenarios_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert set(json.loads(scenarios_path.read_text())) == {"bear", "base", "bull"}


def test_cli_simulate_rejects_bad_allocation(tmp_path: Path):
    result = runner.invoke(
        app,
        ["simulate", "--initial-portfolio", "1000", "--equity-pct", "80", "--bonds-pct", "40", "--trials", "10"],
    )
    assert result.exit_code != 0


def test_cli_simulate_with_history(tmp_path: Path):
    snapshots_path, _ = _inputs(tmp_path)
    sim_path = tmp_path / "sim.json"
    result = runner.invoke(
        app,
        [
            "simulate",
            "--initial-portfolio",
            "500000",
            "--trials",
            "100",
            "--seed",
            "3",
            "--historical",
            "--snapshots",
            str(snapshots_path),
            "--out",
            str(sim_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(sim_path.read_text())
    assert payload["params"]["assumptions"]["equity"]["mean_return"] != 7.0


def test_cli_historical(tmp_path: Path):
    snapshots_path, _ = _inputs(tmp_path)
    result = runner.invoke(app, ["historical", "--snapshots", str(snapshots_path)])
    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["available_months"] == 36
    assert set(payload["classes"]) == {"equity", "bonds"}


def test_cli_fire(tmp_path: Path):
    out_path = tmp_path / "fire.json"
    result = runner.invoke(
        app,
        [
            "fire",
            "--net-worth",
            "500000",
            "--expenses",
            "40000",
            "--savings",
            "30000",
            "--start-year",
            "2024",
            "--planned-expenses",
            "50000",
            "--out",
            str(out_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(out_path.read_text())
    assert abs(payload["metrics"]["fire_number"] - 1_000_000.0) < 1e-6
    assert abs(payload["planned"]["planned_fire_number"] - 1_250_000.0) < 1e-6
    assert payload["projection"]["yearly"][0]["calendar_year"] == 2025
    assert set(payload["projection"]["years_to_fire"]) == {"bear", "base", "bull"}


def _write_settings(tmp_path: Path) -> Path:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(
        json.dumps(
            {
                "withdrawal_rate": 5.0,
                "planned_annual_expenses": 50000,
                "fire_scenarios": {
                    "bear": {"growth_rate": 2, "inflation_rate": 3},
                    "base": {"growth_rate": 5, "inflation_rate": 2},
                    "bull": {"growth_rate": 8, "inflation_rate": 1},
                },
                "monte_carlo_scenarios": {
                    "crash": {
                        "inflation_rate": 4,
                        "assumptions": {"equity": {"mean_return": -1, "volatility": 25}},
                    },
                    "boom": {
                        "inflation_rate": 2,
                        "assumptions": {"equity": {"mean_return": 9, "volatility": 15}},
                    },
                },
            }
        )
    )
    return settings_path


def test_cli_fire_reads_settings(tmp_path: Path):
    out_path = tmp_path / "fire.json"
    result = runner.invoke(
        app,
        [
            "fire",
            "--net-worth",
            "400000",
            "--expenses",
            "40000",
            "--start-year",
            "2024",
            "--settings",
            str(_write_settings(tmp_path)),
            "--out",
            str(out_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(out_path.read_text())
    assert payload["metrics"]["withdrawal_rate"] == 5.0
    assert abs(payload["metrics"]["fire_number"] - 800_000.0) < 1e-6
    assert abs(payload["planned"]["planned_fire_number"] - 1_000_000.0) < 1e-6
    assert payload["projection"]["scenarios"]["base"]["growth_rate"] == 5.0


def test_cli_fire_option_overrides_settings(tmp_path: Path):
    out_path = tmp_path / "fire.json"
    result = runner.invoke(
        app,
        [
            "fire",
            "--net-worth",
            "400000",
            "--expenses",
            "40000",
            "--withdrawal-rate",
            "4",
            "--settings",
            str(_write_settings(tmp_path)),
            "--out",
            str(out_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert json.loads(out_path.read_text())["metrics"]["withdrawal_rate"] == 4.0


def test_cli_simulate_uses_settings_scenarios(tmp_path: Path):
    out_path = tmp_path / "sim.json"
    result = runner.invoke(
        app,
        [
            "simulate",
            "--initial-portfolio",
            "1000000",
            "--withdrawal",
            "40000",
            "--trials",
            "50",
            "--seed",
            "5",
            "--scenarios",
            "--settings",
            str(_write_settings(tmp_path)),
            "--out",
            str(out_path),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(out_path.read_text())
    assert set(payload) == {"crash", "boom"}
    assert payload["crash"]["params"]["inflation_rate"] == 4.0


def test_cli_reports_unreadable_settings(tmp_path: Path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    for path in (broken, tmp_path / "missing.json"):
        result = runner.invoke(
            app, ["fire", "--net-worth", "1000", "--expenses", "40", "--settings", str(path)]
        )
        assert result.exit_code == 2

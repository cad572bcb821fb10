import json

from golfweights.cli import main
from tests.synthetic import EVENT_ID, TOURNAMENT, write_inputs


def _args(tmp_path, *extra: str) -> list[str]:
    return [
        "--event",
        EVENT_ID,
        "--tournament",
        TOURNAMENT,
        "--seed",
        "7",
        "--tests",
        "20",
        "--data-dir",
        str(tmp_path / "data"),
        "--output-dir",
        str(tmp_path / "output"),
        *extra,
    ]


def test_cli_runs_and_prints_summary(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("GOLFWEIGHTS_DB_PATH", str(tmp_path / "cli.sqlite"))
    write_inputs(tmp_path / "data")

    status = main(_args(tmp_path, "--dry-run"))

    assert status == 0
    out = capsys.readouterr().out
    assert "supervised" in out
    assert "Recommendation:" in out
    report = json.loads((tmp_path / "output" / "adaptive_optimizer_results.json").read_text(encoding="utf-8"))
    assert report["optSeed"] == "7"
    assert report["dryRun"] is True


def test_cli_exclude_flag_is_recorded(tmp_path, monkeypatch):
    monkeypatch.setenv("GOLFWEIGHTS_DB_PATH", str(tmp_path / "cli.sqlite"))
    write_inputs(tmp_path / "data")

    assert main(_args(tmp_path, "--exclude-current-event-rounds")) == 0

    report = json.loads((tmp_path / "output" / "adaptive_optimizer_results.json").read_text(encoding="utf-8"))
    assert report["runFingerprint"]["includeCurrentEventRounds"] is False
    assert report["currentEventRounds"]["currentSeasonMetrics"] is False


def test_cli_missing_inputs_exit_code(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("GOLFWEIGHTS_DB_PATH", str(tmp_path / "cli.sqlite"))
    (tmp_path / "data").mkdir()

    assert main(_args(tmp_path)) == 1
    assert "Missing required input" in capsys.readouterr().err

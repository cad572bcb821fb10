import json
from datetime import datetime, timedelta, timezone

import pytest

from golfweights.models import WeightTemplate
from golfweights.persistence import RunStore, TemplateStore
from golfweights.persistence.fingerprint import fingerprint, hash_file
from golfweights.persistence.guard import WriteAction, backup_if_exists, maybe_persist, templates_differ
from golfweights.persistence.reports import render_text_report, write_reports


@pytest.fixture(autouse=True)
def _no_db_override(monkeypatch):
    monkeypatch.delenv("GOLFWEIGHTS_DB_PATH", raising=False)


def _sample_template(name: str = "EVENT", putting: float = 0.5) -> WeightTemplate:
    return WeightTemplate(
        name=name,
        event_id="100",
        description="test",
        group_weights={"Putting": putting, "Around the Green": 1 - putting},
        metric_weights={"Putting::SG Putting": 1.0, "Around the Green::SG Around Green": 1.0},
    )


def test_template_store_roundtrip_and_seed(tmp_path):
    store = TemplateStore(tmp_path / "store.sqlite")

    assert store.seed_defaults() == 3
    assert store.seed_defaults() == 0
    assert store.names() == ["BALANCED", "POWER", "TECHNICAL"]

    store.upsert(_sample_template())
    loaded = store.get("EVENT")
    assert loaded.event_id == "100"
    assert loaded.metric_weights["Putting::SG Putting"] == 1.0

    store.delete("EVENT")
    assert store.find("EVENT") is None
    with pytest.raises(KeyError):
        store.delete("EVENT")


def test_run_store_lists_newest_first(tmp_path):
    store = RunStore(tmp_path / "store.sqlite")
    now = datetime.now(timezone.utc)
    older = store.save_run(event_id="100", mode="supervised", report={"a": 1}, created_at=now - timedelta(hours=1))
    newer = store.save_run(event_id="200", mode="pre_event_training", report={"b": 2}, created_at=now)

    assert [record.run_id for record in store.list_runs()] == [newer.run_id, older.run_id]
    assert [record.run_id for record in store.list_runs(event_id="100")] == [older.run_id]
    assert store.get_run(newer.run_id).report == {"b": 2}
    assert store.get_run("missing") is None


def test_templates_differ_tolerance():
    base = _sample_template()

    assert not templates_differ(base, _sample_template(putting=0.50005))
    assert templates_differ(base, _sample_template(putting=0.51))
    assert templates_differ(base, None)
    extra = base.with_weights(metric_weights={**base.metric_weights, "Putting::Other": 0.0})
    assert templates_differ(base, extra)


def test_maybe_persist_skips_unchanged_template(tmp_path):
    store = TemplateStore(tmp_path / "store.sqlite")
    existing = store.upsert(_sample_template())

    outcome = maybe_persist(_sample_template(), existing, store, output_dir=tmp_path / "out", dry_run=False)

    assert outcome.action is WriteAction.SKIPPED
    assert not (tmp_path / "out").exists()


def test_maybe_persist_dry_run_writes_preview_only(tmp_path):
    store = TemplateStore(tmp_path / "store.sqlite")
    existing = store.upsert(_sample_template())

    outcome = maybe_persist(_sample_template(putting=0.7), existing, store, output_dir=tmp_path / "out")

    assert outcome.action is WriteAction.DRY_RUN
    preview = json.loads((tmp_path / "out" / "dryrun_EVENT.json").read_text(encoding="utf-8"))
    assert preview["groupWeights"]["Putting"] == pytest.approx(0.7)
    assert outcome.backup is not None
    assert store.get("EVENT").group_weights["Putting"] == pytest.approx(0.5)


def test_maybe_persist_writes_and_backs_up(tmp_path):
    store = TemplateStore(tmp_path / "store.sqlite")
    existing = store.upsert(_sample_template())

    outcome = maybe_persist(_sample_template(putting=0.7), existing, store, output_dir=tmp_path / "out", dry_run=False)

    assert outcome.action is WriteAction.WRITTEN
    assert outcome.to_dict()["action"] == "written"
    archived = json.loads(open(outcome.backup, encoding="utf-8").read())
    assert archived["groupWeights"]["Putting"] == pytest.approx(0.5)
    assert store.get("EVENT").group_weights["Putting"] == pytest.approx(0.7)


def test_backup_if_exists(tmp_path):
    target = tmp_path / "report.json"
    assert backup_if_exists(target) is None
    target.write_text("{}", encoding="utf-8")

    backup = backup_if_exists(target)

    assert backup is not None
    assert backup.parent == tmp_path / "archive"
    assert backup.read_text(encoding="utf-8") == "{}"


def test_fingerprint_hashes_inputs(tmp_path):
    source = tmp_path / "history.csv"
    source.write_text("a,b\n1,2\n", encoding="utf-8")

    result = fingerprint(
        [("historicalData", source), ("approachSkill", None)],
        {"event_id": 100, "season": 2026, "opt_seed": "", "tests": "25", "dry_run": False},
    )
    payload = result.to_dict()

    assert payload["eventId"] == "100"
    assert payload["season"] == "2026"
    assert payload["optSeed"] is None
    assert payload["tests"] == 25
    assert payload["dryRun"] is False
    assert payload["files"]["historicalData"] == {"path": str(source.resolve()), "sha256": hash_file(source)}
    assert payload["files"]["approachSkill"] == {"path": None, "sha256": None}
    assert hash_file(tmp_path / "missing.csv") is None


def test_fingerprint_is_stable_and_tracks_each_file(tmp_path):
    history = tmp_path / "history.csv"
    history.write_bytes(b"x" * 200_000)
    field_file = tmp_path / "field.csv"
    field_file.write_text("dg_id\n1\n", encoding="utf-8")
    inputs = [("historicalData", history), ("tournamentField", field_file)]
    params = {"event_id": "100", "season": "2026", "opt_seed": "42", "tests": 10}

    first = fingerprint(inputs, params).to_dict()["files"]
    second = fingerprint(inputs, params).to_dict()["files"]
    assert first == second

    history.write_bytes(b"x" * 199_999 + b"y")
    changed = fingerprint(inputs, params).to_dict()["files"]

    assert changed["historicalData"]["sha256"] != first["historicalData"]["sha256"]
    assert changed["historicalData"]["path"] == first["historicalData"]["path"]
    assert changed["tournamentField"] == first["tournamentField"]


def test_fingerprint_separates_same_named_files(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    left = tmp_path / "a" / "field.csv"
    right = tmp_path / "b" / "field.csv"
    left.write_text("dg_id\n1\n", encoding="utf-8")
    right.write_text("dg_id\n1\n", encoding="utf-8")

    files = fingerprint([("left", left), ("right", right)], {"event_id": "100"}).to_dict()["files"]

    assert files["left"]["path"] != files["right"]["path"]
    assert files["left"]["sha256"] == files["right"]["sha256"]


def test_write_reports_archives_previous_output(tmp_path):
    report = {"mode": "pre_event_training", "eventId": "100", "dryRun": True, "templateWrites": []}

    first = write_reports(report, tmp_path)
    second = write_reports(report, tmp_path)

    assert first.json_path.name == "adaptive_optimizer_results.json"
    assert first.json_backup is None
    assert second.json_backup is not None
    assert json.loads(second.json_path.read_text(encoding="utf-8"))["eventId"] == "100"


def test_text_report_lists_template_writes():
    text = render_text_report(
        {
            "mode": "supervised",
            "dryRun": False,
            "optSeed": "7",
            "templateWrites": [{"name": "EVENT", "action": "written", "targets": ["db.sqlite"]}],
        }
    )

    assert "FINAL RESULTS" in text
    assert "OPT_SEED: 7" in text
    assert "EVENT: written" in text
    assert "    - db.sqlite" in text

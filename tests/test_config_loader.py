import json
from pathlib import Path

import pytest

from golfweights.config_loader import EventConfig, RunSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "OPT_SEED",
        "OPT_TESTS",
        "WRITE_TEMPLATES",
        "GOLFWEIGHTS_DATA_DIR",
        "GOLFWEIGHTS_OUTPUT_DIR",
        "GOLFWEIGHTS_DB_PATH",
        "SIMILAR_COURSES_WEIGHT",
        "PUTTING_COURSES_WEIGHT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_event_config_from_csv(tmp_path):
    path = tmp_path / "Event - Configuration Sheet.csv"
    path.write_text(
        "Setting,Value\n"
        "Current Season,2026.0\n"
        "Course Name Key,PEBBLE\n"
        "Similar Course IDs,\"14.0, 33;7\"\n"
        "Putting Course IDs,\n"
        "Similar Courses Weight,1.7\n"
        "under100,0.25\n"
        "over200,0.1\n",
        encoding="utf-8",
    )

    config = EventConfig.load(path)

    assert config.current_season == "2026"
    assert config.course_name_key == "PEBBLE"
    assert config.similar_course_ids == ["14", "33", "7"]
    assert config.putting_course_ids == []
    assert config.similar_courses_weight == 1.0
    assert config.putting_courses_weight == 0.35
    assert config.course_setup_weights == {"under100": 0.25, "over200": 0.1}


def test_event_config_json_roundtrip(tmp_path):
    original = EventConfig(
        current_season="2026",
        course_name_key="PEBBLE",
        similar_course_ids=["14"],
        putting_course_ids=["22", "23"],
        similar_courses_weight=0.4,
        course_setup_weights={"from100to150": 0.35},
    )
    path = tmp_path / "config.json"
    original.save(path)

    assert json.loads(path.read_text(encoding="utf-8"))["putting_course_ids"] == ["22", "23"]
    assert EventConfig.load(path) == original


def test_run_settings_env_defaults(monkeypatch):
    monkeypatch.setenv("OPT_SEED", " 42 ")
    monkeypatch.setenv("OPT_TESTS", "-5")
    monkeypatch.setenv("WRITE_TEMPLATES", "yes")
    monkeypatch.setenv("GOLFWEIGHTS_DATA_DIR", "inputs")

    settings = RunSettings.from_env("100")

    assert settings.opt_seed == "42"
    assert settings.tests == 0
    assert settings.dry_run is False
    assert settings.data_dir == Path("inputs")
    assert settings.db_path is None


def test_run_settings_overrides_win(monkeypatch):
    monkeypatch.setenv("OPT_TESTS", "oops")

    settings = RunSettings.from_env("100", tests=25, season=None, output_dir="reports", dry_run=True)

    assert settings.tests == 25
    assert settings.season is None
    assert settings.output_dir == Path("reports")
    with pytest.raises(TypeError):
        RunSettings.from_env("100", unknown=1)


def test_blend_weights_clamped_from_env(monkeypatch):
    config = EventConfig(similar_courses_weight=0.2, putting_courses_weight=0.5)
    settings = RunSettings(event_id="100")

    assert settings.similar_blend(config) == 0.2
    monkeypatch.setenv("SIMILAR_COURSES_WEIGHT", "2")
    monkeypatch.setenv("PUTTING_COURSES_WEIGHT", "nope")
    assert settings.similar_blend(config) == 1.0
    assert settings.putting_blend(config) == 0.5

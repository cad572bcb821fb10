import pytest

from golfweights.config import get_metric_config
from golfweights.ingest.validation import (
    DeltaTrendEntry,
    TypeSummaryEntry,
    ValidationWeightEntry,
    build_delta_trend_map,
    build_metric_constraints,
    build_validation_group_weights,
    build_validation_metric_weights,
    build_validation_template,
    determine_course_type,
    load_validation_outputs,
    parse_delta_trends,
    parse_type_summary,
    parse_weight_templates,
    resolve_metric_name,
)
from golfweights.models import WeightTemplate

SUMMARY_CSV = """Correlation summary
Metric,Avg Correlation,Count
SG Putting,0.45,10
SG OTT,n/a,5
,0.2,
Scoring: Approach <100 SG,-15%,8
"""

TEMPLATES_CSV = """POWER COURSES
Metric,Config Weight,Template Weight,Recommended Weight
SG Putting,0.1,0.2,0.3
SG OTT,0.1,0.2,
TECHNICAL COURSES
Metric,Template Weight
Driving Distance,0.4
"""

TRENDS_CSV = """Metric,Bias Z,Status
SG Putting,0.5,stable
SG OTT,,
"""


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_type_summary_skips_unusable_rows(tmp_path):
    entries = parse_type_summary(_write(tmp_path / "03_POWER_summary.csv", SUMMARY_CSV))

    assert [entry.metric for entry in entries] == ["SG Putting", "Scoring: Approach <100 SG"]
    assert entries[1].avg_correlation == pytest.approx(-15.0)
    assert parse_type_summary(tmp_path / "missing.csv") is None
    assert parse_type_summary(_write(tmp_path / "empty.csv", "a,b\n1,2\n")) is None


def test_parse_weight_templates_by_section(tmp_path):
    sections = parse_weight_templates(_write(tmp_path / "weight_templates.csv", TEMPLATES_CSV))

    power = {entry.metric: entry for entry in sections["POWER"]}
    assert power["SG Putting"].preferred_weight == 0.3
    assert power["SG OTT"].preferred_weight == 0.2
    assert sections["TECHNICAL"][0].config_weight is None
    assert sections["TECHNICAL"][0].preferred_weight == 0.4
    assert sections["BALANCED"] == []


def test_parse_delta_trends(tmp_path):
    trends = parse_delta_trends(_write(tmp_path / "05_model_delta_trends.csv", TRENDS_CSV))

    assert trends[0].bias_z == 0.5
    assert trends[0].status == "STABLE"
    assert trends[1].bias_z is None
    assert trends[1].status is None


def test_resolve_metric_name_uses_prefix_and_alias():
    config = get_metric_config()

    assert resolve_metric_name("Scoring: Approach <100 SG", config) == "Scoring: Approach <100 SG"
    assert resolve_metric_name("Poor Shots", config) == "Poor Shot Avoidance"
    assert resolve_metric_name("Greens in Regulation", config) is None
    assert resolve_metric_name("", config) is None


def test_determine_course_type_by_mean_abs_correlation():
    summaries = {
        "POWER": [TypeSummaryEntry("SG OTT", 0.2), TypeSummaryEntry("SG Putting", -0.2)],
        "TECHNICAL": [TypeSummaryEntry("SG Putting", -0.5)],
        "BALANCED": [],
    }
    assert determine_course_type(summaries) == "TECHNICAL"
    assert determine_course_type({"POWER": []}) is None


def test_validation_weights_and_constraints():
    config = get_metric_config()
    entries = [
        ValidationWeightEntry("SG OTT", recommended_weight=0.2),
        ValidationWeightEntry("Driving Distance", template_weight=0.2),
    ]

    metric_weights = build_validation_metric_weights(config, entries, {"Putting::SG Putting": 1.0})
    assert metric_weights["Driving Performance::SG OTT"] == pytest.approx(0.5)
    assert metric_weights["Driving Performance::Driving Accuracy"] == 0.0
    assert metric_weights["Putting::SG Putting"] == 1.0

    constraints = build_metric_constraints(config, entries)
    assert constraints["Driving Performance::SG OTT"].minimum == pytest.approx(0.16)
    assert constraints["Driving Performance::SG OTT"].maximum == pytest.approx(0.24)
    assert "Putting::SG Putting" not in constraints


def test_validation_group_weights_and_trend_scores():
    config = get_metric_config()
    summary = [TypeSummaryEntry("SG Putting", 0.45), TypeSummaryEntry("SG OTT", -0.15)]

    weights = build_validation_group_weights(config, summary, {"Putting": 0.5, "Scoring": 0.5})

    assert weights == pytest.approx({"Putting": 0.5, "Scoring": 1 / 3, "Driving Performance": 1 / 6})
    trends = [DeltaTrendEntry("SG Putting", bias_z=0.5), DeltaTrendEntry("SG OTT")]
    assert build_delta_trend_map(config, trends) == pytest.approx({"SG Putting": 0.5, "SG OTT": 0.0})


def test_load_validation_outputs_and_template(tmp_path):
    _write(tmp_path / "03_POWER_summary.csv", SUMMARY_CSV)
    _write(tmp_path / "weight_templates.csv", TEMPLATES_CSV)
    _write(tmp_path / "05_model_delta_trends.csv", TRENDS_CSV)

    data = load_validation_outputs([tmp_path])

    assert data.course_type == "POWER"
    assert data.weight_templates_path.name == "weight_templates.csv"
    assert [entry.metric for entry in data.delta_trends] == ["SG Putting", "SG OTT"]

    fallback = WeightTemplate(
        name="POWER",
        group_weights={"Putting": 0.5, "Driving Performance": 0.5},
        metric_weights={"Putting::SG Putting": 1.0},
    )
    template = build_validation_template("POWER", get_metric_config(), data, {"POWER": fallback}, source_label="tests")

    assert template.name == "POWER"
    assert template.description == "Validation CSV POWER template (tests)"
    assert sum(template.group_weights.values()) == pytest.approx(1.0)
    assert build_validation_template(None, get_metric_config(), data, {}) is None
    assert build_validation_template("BALANCED", get_metric_config(), data, {}) is None


def test_load_validation_outputs_without_files(tmp_path):
    data = load_validation_outputs([tmp_path / "nowhere"])

    assert data.course_type is None
    assert data.weight_templates == {"POWER": [], "TECHNICAL": [], "BALANCED": []}
    assert data.delta_trends == []

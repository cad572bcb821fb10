import pytest
from pydantic import ValidationError

from golfweights.config import (
    COURSE_TYPES,
    get_builtin_template,
    get_label_group,
    get_metric_config,
    iter_builtin_templates,
    normalize_metric_label,
)
from golfweights.models import WeightTemplate, normalize_weights, split_metric_key


def test_weight_template_is_frozen():
    template = WeightTemplate(name="T", group_weights={"Putting": 1.0})

    with pytest.raises((TypeError, ValidationError)):
        template.name = "U"  # type: ignore[misc]

    with pytest.raises(ValidationError):
        WeightTemplate(name="")


def test_from_payload_accepts_nested_and_object_weights():
    template = WeightTemplate.from_payload(
        {
            "name": "EVENT",
            "eventId": 14,
            "groupWeights": {"Putting": 1},
            "metricWeights": {"Putting": {"SG Putting": {"weight": 0.8}}, "Scoring::SG T2G": 0.2},
        }
    )

    assert template.event_id == "14"
    assert template.metric_weights == {"Putting::SG Putting": 0.8, "Scoring::SG T2G": 0.2}
    assert template.to_payload()["metricWeights"] == {"Putting": {"SG Putting": 0.8}, "Scoring": {"SG T2G": 0.2}}


def test_with_weights_returns_copy():
    template = WeightTemplate(name="T", group_weights={"Putting": 1.0})

    updated = template.with_weights(group_weights={"Scoring": 1.0}, description="tuned")

    assert template.group_weights == {"Putting": 1.0}
    assert updated.group_weights == {"Scoring": 1.0}
    assert updated.description == "tuned"


def test_normalize_helpers():
    assert normalize_weights({"a": 1.0, "b": 3.0}) == {"a": 0.25, "b": 0.75}
    assert normalize_weights({"a": 0.0}) == {"a": 0.0}
    assert split_metric_key("Putting::SG Putting") == ("Putting", "SG Putting")
    assert split_metric_key("bogus") == ("bogus", "")


def test_metric_labels_and_groups():
    config = get_metric_config()

    assert len(config.labels) == 35
    assert normalize_metric_label("Course Management: Approach <100 Prox") == "Approach <100 Prox"
    assert normalize_metric_label("Poor Shot Avoidance") == "Poor Shots"
    assert config.is_lower_better("Scoring Average")
    assert config.is_lower_better("Approach <100 Prox")
    assert get_label_group("SG Putting") == "Putting"
    assert get_label_group("Approach <100 SG") == "Approach - Short (<100)"
    with pytest.raises(KeyError):
        get_label_group("Unknown Metric")


def test_builtin_templates_cover_every_group():
    group_names = {group.name for group in get_metric_config().groups}

    payloads = list(iter_builtin_templates())

    assert [payload["name"] for payload in payloads] == list(COURSE_TYPES)
    for payload in payloads:
        template = WeightTemplate.from_payload(payload)
        assert set(template.group_weights) == group_names
        assert sum(template.group_weights.values()) == pytest.approx(1.0, abs=0.01)
    assert get_builtin_template("power")["name"] == "POWER"

import pytest

from golfweights.ingest.validation import DeltaTrendEntry, MetricConstraint
from golfweights.models import CvSummary
from golfweights.optimizer.blending import (
    adjust_constraints_by_drift,
    apply_inversions,
    blend_alignment_maps,
    blend_available_maps,
    blend_group_weights,
    blend_metric_weights,
    blend_suggested_group_weights_with_cv,
    build_alignment_map,
    build_logistic_alignment_map,
    build_metric_weights_from_suggested,
    compute_metric_alignment_score,
    compute_reliability,
    inverted_label_set,
    summarize_drift_guardrails,
)
from golfweights.optimizer.signals import (
    LogisticSummary,
    MetricCorrelation,
    SuggestedGroupWeights,
    SuggestedMetricWeight,
    SuggestedWeights,
)


def _reliable_cv(**overrides) -> CvSummary:
    values = dict(success=True, event_count=8, total_samples=400, avg_log_loss=0.2, avg_accuracy=0.7)
    values.update(overrides)
    return CvSummary(**values)


def test_alignment_maps_normalize_labels():
    alignment = build_alignment_map([MetricCorrelation("Scoring: Approach <100 SG", 0.3, 10)])
    assert alignment == {"Approach <100 SG": 0.3}

    logistic = LogisticSummary(success=True, samples=50, labels=("SG Putting",), weights=(-2.0,))
    assert build_logistic_alignment_map(logistic) == {"SG Putting": 2.0}
    assert build_logistic_alignment_map(LogisticSummary(success=False, samples=3)) == {}


def test_blend_alignment_maps_uses_union_with_zero_fill():
    blended = blend_alignment_maps([{"a": 1.0, "b": 0.5}, {"a": 0.0, "c": 1.0}], [0.75, 0.25])
    assert blended == pytest.approx({"a": 0.75, "b": 0.375, "c": 0.25})


def test_blend_available_maps_renormalizes_present_sources():
    blended = blend_available_maps([({"a": 1.0}, 0.6), ({}, 0.25), ({"a": 0.0}, 0.15)])
    assert blended["a"] == pytest.approx(0.6 / 0.75)
    assert blend_available_maps([({}, 1.0)]) == {}


def test_inversions_flip_lower_is_better_metrics():
    signal = [
        MetricCorrelation("Scoring Average", -0.4, 30),
        MetricCorrelation("SG Putting", -0.4, 30),
        MetricCorrelation("Poor Shots", 0.2, 30),
    ]
    inverted = inverted_label_set(signal)
    assert inverted == {"Scoring Average"}

    weights = apply_inversions({"Scoring::Scoring Average": 0.11, "Putting::SG Putting": 1.0}, inverted)
    assert weights["Scoring::Scoring Average"] == pytest.approx(-0.11)
    assert weights["Putting::SG Putting"] == 1.0


def test_blend_group_weights_normalizes():
    blended = blend_group_weights({"A": 0.5, "B": 0.5}, {"A": 1.0}, 0.6, 0.4)
    assert blended == pytest.approx({"A": 0.7, "B": 0.3})


def test_blend_metric_weights_keeps_prior_for_silent_groups():
    prior = {"Putting::SG Putting": 1.0, "Around the Green::SG Around Green": 0.0}
    model = {"Putting::SG Putting": 1.0}

    blended = blend_metric_weights(prior, model)

    assert blended["Putting::SG Putting"] == pytest.approx(1.0)
    assert blended["Around the Green::SG Around Green"] == 0.0
    assert blended["Driving Performance::SG OTT"] == 0.0


def test_metric_weights_from_suggestions_normalize_per_group():
    suggested = SuggestedWeights(
        source="top20-signal",
        metrics=(
            SuggestedMetricWeight("Driving Distance", 0.3, 0.3),
            SuggestedMetricWeight("SG OTT", 0.1, 0.1),
        ),
    )
    fallback = {"Putting::SG Putting": 1.0}

    weights = build_metric_weights_from_suggested(suggested, fallback)

    assert weights["Driving Performance::Driving Distance"] == pytest.approx(0.75)
    assert weights["Driving Performance::SG OTT"] == pytest.approx(0.25)
    assert weights["Driving Performance::Driving Accuracy"] == 0.0
    assert weights["Putting::SG Putting"] == 1.0


def test_reliability_ramps():
    assert compute_reliability(_reliable_cv()) == pytest.approx(1.0)
    assert compute_reliability(None) == 0.0
    assert compute_reliability(CvSummary(success=False)) == 0.0
    assert compute_reliability(_reliable_cv(event_count=2)) == 0.0
    assert compute_reliability(_reliable_cv(total_samples=120)) == 0.0

    thinner = compute_reliability(_reliable_cv(event_count=5))
    assert 0.0 < thinner < 1.0
    assert compute_reliability(_reliable_cv(avg_log_loss=0.35, avg_accuracy=0.7)) == pytest.approx(0.75)


def test_conservative_group_weights_scale_with_reliability():
    suggested = SuggestedGroupWeights(source="top20-signal", weights={"A": 1.0})
    fallback = {"A": 0.5, "B": 0.5}

    full = blend_suggested_group_weights_with_cv(suggested, fallback, 1.0)
    none = blend_suggested_group_weights_with_cv(suggested, fallback, 0.0)

    assert full.model_share == pytest.approx(0.35)
    assert full.prior_share == pytest.approx(0.65)
    assert sum(full.weights.values()) == pytest.approx(1.0)
    assert full.weights["A"] > none.weights["A"]
    assert none.weights == pytest.approx(fallback)
    assert full.to_dict()["weights"][0]["groupName"] == "A"

    empty = blend_suggested_group_weights_with_cv(SuggestedGroupWeights(source="none"), fallback, 1.0)
    assert empty.weights == {}


def test_metric_alignment_score():
    metric_weights = {"Putting::SG Putting": 1.0, "Driving Performance::SG OTT": 0.5, "bogus": 1.0}
    group_weights = {"Putting": 0.5, "Driving Performance": 0.5}
    alignment = {"SG Putting": 0.8, "SG OTT": -0.4}

    score = compute_metric_alignment_score(metric_weights, group_weights, alignment)

    assert score == pytest.approx((0.5 * 0.8 + 0.25 * -0.4) / 0.75)
    assert compute_metric_alignment_score(metric_weights, group_weights, {}) == 0.0


def test_drift_recenters_constraints():
    constraints = {
        "Putting::SG Putting": MetricConstraint(minimum=0.8, maximum=1.2),
        "Driving Performance::SG OTT": MetricConstraint(minimum=0.4, maximum=0.6),
        "Around the Green::SG Around Green": MetricConstraint(minimum=0.9, maximum=1.1),
    }
    trends = [DeltaTrendEntry("SG Putting", status="stable"), DeltaTrendEntry("SG OTT", status="CHRONIC")]

    adjusted = adjust_constraints_by_drift(constraints, trends)

    assert adjusted["Putting::SG Putting"].minimum == pytest.approx(0.9)
    assert adjusted["Putting::SG Putting"].maximum == pytest.approx(1.1)
    assert adjusted["Driving Performance::SG OTT"].minimum == pytest.approx(0.325)
    assert adjusted["Around the Green::SG Around Green"].maximum == pytest.approx(1.2)
    assert adjust_constraints_by_drift(constraints, []) == constraints

    summary = summarize_drift_guardrails(constraints, trends)
    assert summary["totalConstrained"] == 3
    assert summary["statusCounts"] == {"STABLE": 1, "WATCH": 1, "CHRONIC": 1}

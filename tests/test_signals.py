import pytest

from golfweights.models import FinishResult, MetricVector, RankedPlayer
from golfweights.optimizer.signals import (
    HistoricalSample,
    LogisticSummary,
    MetricCorrelation,
    blend_correlation_lists,
    blend_single_metric_correlation,
    build_feature_vector,
    build_historical_metric_samples,
    build_suggested_group_weights,
    build_suggested_metric_weights,
    compute_historical_metric_correlations,
    correlation_per_metric,
    keep_trainable_events,
    top_n_correlation_per_metric,
)


def _sample_players(count: int = 30) -> list[RankedPlayer]:
    players = []
    for finish in range(1, count + 1):
        metrics = MetricVector.from_mapping(
            ["SG Putting", "Scoring Average", "Driving Distance"],
            {
                "SG Putting": 2.0 - finish * 0.1,
                "Scoring Average": 68.0 + finish * 0.1,
                "Driving Distance": None,
            },
        )
        players.append(RankedPlayer(player_id=f"p{finish}", name=f"P{finish}", rank=finish, score=0.0, metrics=metrics))
    return players


def _sample_results(count: int = 30) -> list[FinishResult]:
    return [FinishResult(player_id=f"p{finish}", finish_position=finish) for finish in range(1, count + 1)]


def test_correlation_orients_lower_is_better_metrics():
    correlations = {
        entry.label: entry
        for entry in correlation_per_metric(
            _sample_players(), _sample_results(), ["SG Putting", "Scoring Average", "Driving Distance"]
        )
    }

    assert correlations["SG Putting"].correlation == pytest.approx(1.0)
    assert correlations["Scoring Average"].correlation == pytest.approx(1.0)
    assert correlations["Driving Distance"].correlation == 0.0
    assert correlations["Driving Distance"].samples == 0


def test_correlation_needs_five_matched_players():
    players = _sample_players(4)
    [entry] = correlation_per_metric(players, _sample_results(4), ["SG Putting"])
    assert entry.correlation == 0.0
    assert entry.samples == 4


def test_top_n_correlation_separates_top_finishers():
    [entry] = top_n_correlation_per_metric(_sample_players(), _sample_results(), ["SG Putting"], top_n=10)
    assert entry.correlation > 0.75
    assert entry.samples == 30


def test_feature_vector_requires_coverage():
    [player] = _sample_players(1)

    assert build_feature_vector(player, ["SG Putting", "Driving Distance", "SG OTT"]) is None
    vector = build_feature_vector(player, ["SG Putting", "Scoring Average", "Driving Distance"], min_coverage=0.5)
    assert vector is not None
    assert vector.coverage == pytest.approx(2 / 3)
    assert vector.features[1] == pytest.approx(-68.1)
    assert vector.features[2] == 0.0


def test_suggested_weights_from_top20_signal():
    signal = [
        MetricCorrelation("SG Putting", 0.6, 30),
        MetricCorrelation("Driving Distance", -0.2, 30),
        MetricCorrelation("SG OTT", 0.2, 30),
    ]

    suggested = build_suggested_metric_weights(signal)

    assert suggested.source == "top20-signal"
    assert [entry.label for entry in suggested.metrics][0] == "SG Putting"
    assert sum(entry.abs_weight for entry in suggested.metrics) == pytest.approx(1.0)
    distance = next(entry for entry in suggested.metrics if entry.label == "Driving Distance")
    assert distance.weight == pytest.approx(-0.2)


def test_suggested_weights_prefer_successful_classifier():
    signal = [MetricCorrelation("SG Putting", 0.6, 30)]
    logistic = LogisticSummary(success=True, samples=40, labels=("SG Putting", "SG OTT"), weights=(3.0, -1.0))

    suggested = build_suggested_metric_weights(signal, logistic)

    assert suggested.source == "top20-logistic"
    putting = suggested.metrics[0]
    assert putting.weight == pytest.approx(0.75)
    assert putting.logistic_weight == 3.0
    assert putting.top20_correlation == 0.6
    assert build_suggested_metric_weights([]).source == "none"


def test_suggested_group_weights_sum_per_primary_group():
    suggested = build_suggested_metric_weights(
        [
            MetricCorrelation("SG Putting", 0.5, 30),
            MetricCorrelation("Driving Distance", 0.25, 30),
            MetricCorrelation("SG OTT", 0.25, 30),
        ]
    )

    groups = build_suggested_group_weights(suggested)

    assert groups.weights == pytest.approx({"Putting": 0.5, "Driving Performance": 0.5})
    assert groups.ranked()[0][1] == pytest.approx(0.5)


def test_blend_correlation_lists_mixes_shared_labels():
    base = [MetricCorrelation("SG Putting", 0.2, 10), MetricCorrelation("SG OTT", 0.4, 10)]
    other = [MetricCorrelation("SG Putting", 0.8, 50)]

    blended = {entry.label: entry for entry in blend_correlation_lists(base, other, 0.5)}

    assert blended["SG Putting"].correlation == pytest.approx(0.5)
    assert blended["SG Putting"].samples == 10
    assert blended["SG OTT"].correlation == 0.4
    assert blend_correlation_lists(base, other, 0.0) == base


def test_blend_single_metric_only_touches_named_label():
    base = [MetricCorrelation("SG Putting", 0.2, 10), MetricCorrelation("SG OTT", 0.4, 10)]
    other = [MetricCorrelation("SG Putting", 1.0, 50), MetricCorrelation("SG OTT", -1.0, 50)]

    blended = {entry.label: entry.correlation for entry in blend_single_metric_correlation(base, other, "SG Putting", 0.25)}

    assert blended["SG Putting"] == pytest.approx(0.4)
    assert blended["SG OTT"] == 0.4


def test_keep_trainable_events_drops_thin_events():
    kept = keep_trainable_events({"a": list(range(10)), "b": list(range(9))})
    assert list(kept) == ["a"]


def test_historical_correlations_weight_years_by_samples():
    samples = []
    for year, count in (("2024", 10), ("2025", 30)):
        for finish in range(1, count + 1):
            samples.append(HistoricalSample(year=year, finish_position=finish, metrics={"Scoring Average": 68 + finish}))

    correlations = compute_historical_metric_correlations(samples)

    assert set(correlations.per_year) == {"2024", "2025"}
    assert correlations.per_year["2024"]["Scoring Average"].correlation == pytest.approx(1.0)
    assert correlations.average["Scoring Average"].samples == 40
    assert correlations.average["Scoring Average"].correlation == pytest.approx(1.0)
    assert correlations.average["SG Putting"].correlation == 0.0


def test_historical_samples_filter_event_and_rank_non_finishers_last():
    rows = [
        {"event_id": "100", "year": "2025", "fin_text": "T5", "sg_putt": "1.2"},
        {"event_id": "100", "year": "2025", "fin_text": "CUT", "sg_putt": "0.2"},
        {"event_id": "100", "year": "2024", "fin_text": "WD", "sg_putt": "0.1"},
        {"event_id": "200", "year": "2025", "fin_text": "1", "sg_putt": "0.5"},
    ]

    samples = build_historical_metric_samples(rows, "100")

    assert [(sample.year, sample.finish_position) for sample in samples] == [("2025", 5), ("2025", 6)]
    assert samples[0].metrics["SG Putting"] == pytest.approx(1.2)
    assert samples[1].metrics["SG Putting"] == pytest.approx(0.2)

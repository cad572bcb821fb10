"""Per-metric signal: correlations with finish, top-N point-biserial and a top-N classifier."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from golfweights.config import HISTORICAL_METRICS, MetricConfig, get_metric_config, normalize_metric_label
from golfweights.ingest.finish import parse_finish, with_fallback
from golfweights.ingest.rounds import Row, historical_metric_value, row_event_id, row_year
from golfweights.models import CvSummary, FinishResult, LogisticModel, RankedPlayer
from golfweights.stats import Sample, cross_validate_by_group, evaluate_logistic, pearson, train_logistic


logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 20
MIN_CORRELATION_SAMPLES = 5
MIN_METRIC_COVERAGE = 0.70
MIN_EVENT_SAMPLES = 10
WEIGHT_RANKING_SIZE = 10


@dataclass(frozen=True)
class MetricCorrelation:
    label: str
    correlation: float
    samples: int

    def to_dict(self) -> dict:
        return {"label": self.label, "correlation": self.correlation, "samples": self.samples}


@dataclass(frozen=True)
class FeatureVector:
    features: Tuple[float, ...]
    coverage: float


@dataclass(frozen=True)
class LogisticSummary:
    """Trained classifier plus the ten largest standardized weights for auditing."""

    success: bool
    samples: int
    labels: Tuple[str, ...] = ()
    weights: Tuple[float, ...] = ()
    bias: float = 0.0
    l2: Optional[float] = None
    accuracy: Optional[float] = None
    log_loss: Optional[float] = None
    message: Optional[str] = None

    def weight_map(self) -> Dict[str, float]:
        return dict(zip(self.labels, self.weights))

    def weight_ranking(self, limit: int = WEIGHT_RANKING_SIZE) -> List[Tuple[str, float]]:
        ranked = sorted(zip(self.labels, self.weights), key=lambda item: abs(item[1]), reverse=True)
        return ranked[:limit]

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "message": self.message, "samples": self.samples}
        return {
            "success": True,
            "samples": self.samples,
            "accuracy": self.accuracy,
            "logLoss": self.log_loss,
            "bias": self.bias,
            "weights": list(self.weights),
            "l2": self.l2,
            "weightRanking": [
                {"label": label, "weight": weight, "absWeight": abs(weight)}
                for label, weight in self.weight_ranking()
            ],
        }


@dataclass(frozen=True)
class SuggestedMetricWeight:
    label: str
    weight: float
    abs_weight: float
    logistic_weight: Optional[float] = None
    top20_correlation: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "weight": self.weight,
            "absWeight": self.abs_weight,
            "logisticWeight": self.logistic_weight,
            "top20Correlation": self.top20_correlation,
        }


@dataclass(frozen=True)
class SuggestedWeights:
    """Normalized suggestions; ``source`` is ``top20-logistic``, ``top20-signal`` or ``none``."""

    source: str
    metrics: Tuple[SuggestedMetricWeight, ...] = ()

    def to_dict(self) -> dict:
        return {"source": self.source, "weights": [entry.to_dict() for entry in self.metrics]}


@dataclass(frozen=True)
class SuggestedGroupWeights:
    source: str
    weights: Dict[str, float] = field(default_factory=dict)

    def ranked(self) -> List[Tuple[str, float]]:
        return sorted(self.weights.items(), key=lambda item: item[1], reverse=True)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "weights": [{"groupName": name, "weight": weight} for name, weight in self.ranked()],
        }


def finish_lookup(results: Iterable[FinishResult]) -> Dict[str, int]:
    return {
        result.player_id: result.finish_position
        for result in results
        if result.player_id and result.finish_position
    }


def _joined_values(
    players: Sequence[RankedPlayer],
    finishes: Mapping[str, int],
    label: str,
    config: MetricConfig,
) -> Tuple[List[float], List[int]]:
    direction = config.direction(label)
    values: List[float] = []
    positions: List[int] = []
    for player in players:
        position = finishes.get(player.player_id)
        if position is None:
            continue
        value = player.metrics.get(label)
        if value is None:
            continue
        values.append(direction.orient(value))
        positions.append(position)
    return values, positions


def correlation_per_metric(
    players: Sequence[RankedPlayer],
    results: Iterable[FinishResult],
    labels: Optional[Sequence[str]] = None,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> List[MetricCorrelation]:
    """Correlation of each oriented metric with ``-finishPosition``; under five samples reports 0."""

    config = metric_config or get_metric_config()
    finishes = finish_lookup(results)
    correlations: List[MetricCorrelation] = []
    for label in labels or config.labels:
        values, positions = _joined_values(players, finishes, label, config)
        if len(values) < MIN_CORRELATION_SAMPLES:
            correlations.append(MetricCorrelation(label, 0.0, len(values)))
            continue
        correlations.append(MetricCorrelation(label, pearson(values, [-p for p in positions]), len(values)))
    return correlations


def top_n_correlation_per_metric(
    players: Sequence[RankedPlayer],
    results: Iterable[FinishResult],
    labels: Optional[Sequence[str]] = None,
    top_n: int = DEFAULT_TOP_N,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> List[MetricCorrelation]:
    """Point-biserial correlation of each oriented metric with ``finishPosition <= top_n``."""

    config = metric_config or get_metric_config()
    finishes = finish_lookup(results)
    correlations: List[MetricCorrelation] = []
    for label in labels or config.labels:
        values, positions = _joined_values(players, finishes, label, config)
        if len(values) < MIN_CORRELATION_SAMPLES:
            correlations.append(MetricCorrelation(label, 0.0, len(values)))
            continue
        indicator = [1.0 if position <= top_n else 0.0 for position in positions]
        correlations.append(MetricCorrelation(label, pearson(values, indicator), len(values)))
    return correlations


def build_feature_vector(
    player: RankedPlayer,
    labels: Sequence[str],
    *,
    metric_config: Optional[MetricConfig] = None,
    min_coverage: float = MIN_METRIC_COVERAGE,
) -> Optional[FeatureVector]:
    """Oriented features (missing as 0) or ``None`` when too few metrics are present."""

    if not labels:
        return None
    config = metric_config or get_metric_config()
    features: List[float] = []
    present = 0
    for label in labels:
        value = player.metrics.get(label)
        if value is None:
            features.append(0.0)
            continue
        present += 1
        features.append(config.direction(label).orient(value))
    coverage = present / len(labels)
    if coverage < min_coverage:
        return None
    return FeatureVector(features=tuple(features), coverage=coverage)


def build_top_n_samples(
    players: Sequence[RankedPlayer],
    results: Iterable[FinishResult],
    labels: Sequence[str],
    top_n: int = DEFAULT_TOP_N,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> List[Sample]:
    finishes = finish_lookup(results)
    samples: List[Sample] = []
    for player in players:
        position = finishes.get(player.player_id)
        if position is None:
            continue
        vector = build_feature_vector(player, labels, metric_config=metric_config)
        if vector is None:
            continue
        samples.append(Sample(features=vector.features, label=1 if position <= top_n else 0))
    return samples


def summarize_logistic(model: LogisticModel, samples: Sequence[Sample], labels: Sequence[str]) -> LogisticSummary:
    if not model.success:
        return LogisticSummary(success=False, samples=model.samples, message=model.message or "Model unavailable")
    evaluation = evaluate_logistic(model, samples)
    return LogisticSummary(
        success=True,
        samples=evaluation.samples,
        labels=tuple(labels),
        weights=model.weights,
        bias=model.bias,
        l2=model.l2,
        accuracy=evaluation.accuracy,
        log_loss=evaluation.log_loss,
    )


def train_top_n_classifier(
    players: Sequence[RankedPlayer],
    results: Iterable[FinishResult],
    labels: Sequence[str],
    top_n: int = DEFAULT_TOP_N,
    *,
    metric_config: Optional[MetricConfig] = None,
    iterations: int = 300,
    learning_rate: float = 0.12,
    l2: float = 0.01,
) -> LogisticSummary:
    samples = build_top_n_samples(players, results, labels, top_n, metric_config=metric_config)
    model = train_logistic(samples, iterations=iterations, learning_rate=learning_rate, l2=l2)
    if not model.success:
        logger.info("Top-%d classifier skipped: %s (%d samples)", top_n, model.message, model.samples)
    return summarize_logistic(model, samples, labels)


def cross_validate_classifier(
    samples_by_event: Mapping[str, Sequence[Sample]],
    labels: Sequence[str],
    *,
    note: Optional[str] = None,
) -> Tuple[CvSummary, Optional[LogisticSummary]]:
    """Leave-one-event-out CV; the final model is summarized over every pooled sample."""

    summary = cross_validate_by_group(samples_by_event)
    if note:
        summary = replace(summary, note=note)
    if not summary.success or summary.final_model is None:
        return summary, None
    pooled = [sample for samples in samples_by_event.values() for sample in samples]
    return summary, summarize_logistic(summary.final_model, pooled, labels)


def keep_trainable_events(samples_by_event: Mapping[str, Sequence[Sample]]) -> Dict[str, List[Sample]]:
    return {
        event_id: list(samples)
        for event_id, samples in samples_by_event.items()
        if len(samples) >= MIN_EVENT_SAMPLES
    }


def blend_correlation_lists(
    base: Sequence[MetricCorrelation],
    blend: Sequence[MetricCorrelation],
    weight: float,
) -> List[MetricCorrelation]:
    """``base*(1-w) + blend*w`` for labels present in both lists."""

    if not base or not blend or weight <= 0:
        return list(base)
    lookup = {entry.label: entry for entry in blend}
    blended: List[MetricCorrelation] = []
    for entry in base:
        other = lookup.get(entry.label)
        if other is None:
            blended.append(entry)
            continue
        blended.append(
            MetricCorrelation(entry.label, entry.correlation * (1 - weight) + other.correlation * weight, entry.samples)
        )
    return blended


def blend_single_metric_correlation(
    base: Sequence[MetricCorrelation],
    blend: Sequence[MetricCorrelation],
    label: str,
    weight: float,
) -> List[MetricCorrelation]:
    if not base or not blend or weight <= 0:
        return list(base)
    other = next((entry for entry in blend if entry.label == label), None)
    if other is None:
        return list(base)
    return [
        MetricCorrelation(entry.label, entry.correlation * (1 - weight) + other.correlation * weight, entry.samples)
        if entry.label == label
        else entry
        for entry in base
    ]


def build_suggested_metric_weights(
    top20_signal: Sequence[MetricCorrelation],
    logistic: Optional[LogisticSummary] = None,
) -> SuggestedWeights:
    """Prefer classifier weights, then top-20 correlations; both normalized by total magnitude."""

    signal = {entry.label: entry.correlation for entry in top20_signal}
    if logistic is not None and logistic.success and logistic.weights:
        raw = [
            (label, weight, weight, signal.get(label))
            for label, weight in zip(logistic.labels, logistic.weights)
        ]
        source = "top20-logistic"
    elif top20_signal:
        raw = [(entry.label, entry.correlation, None, entry.correlation) for entry in top20_signal]
        source = "top20-signal"
    else:
        return SuggestedWeights(source="none")

    total = sum(abs(weight) for _, weight, _, _ in raw)
    entries = [
        SuggestedMetricWeight(
            label=label,
            weight=weight / total if total > 0 else 0.0,
            abs_weight=abs(weight) / total if total > 0 else 0.0,
            logistic_weight=logistic_weight,
            top20_correlation=correlation,
        )
        for label, weight, logistic_weight, correlation in raw
    ]
    entries.sort(key=lambda entry: entry.abs_weight, reverse=True)
    return SuggestedWeights(source=source, metrics=tuple(entries))


def build_suggested_group_weights(
    suggested: SuggestedWeights,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> SuggestedGroupWeights:
    """Sum absolute metric suggestions per primary group and normalize."""

    config = metric_config or get_metric_config()
    owners = config.label_groups()
    totals: Dict[str, float] = defaultdict(float)
    for entry in suggested.metrics:
        group_name = owners.get(normalize_metric_label(entry.label))
        if group_name is None:
            continue
        totals[group_name] += entry.abs_weight
    grand_total = sum(totals.values())
    weights = {name: (value / grand_total if grand_total > 0 else 0.0) for name, value in totals.items()}
    return SuggestedGroupWeights(source=suggested.source, weights=weights)


@dataclass(frozen=True)
class HistoricalSample:
    year: str
    finish_position: int
    metrics: Mapping[str, float]


@dataclass
class HistoricalCorrelations:
    per_year: Dict[str, Dict[str, MetricCorrelation]] = field(default_factory=dict)
    average: Dict[str, MetricCorrelation] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "perYear": {
                year: {label: entry.to_dict() for label, entry in metrics.items()}
                for year, metrics in sorted(self.per_year.items())
            },
            "average": {label: entry.to_dict() for label, entry in self.average.items()},
        }


def build_historical_metric_samples(rows: Iterable[Row], event_id: Optional[str]) -> List[HistoricalSample]:
    """One sample per historical round of ``event_id``.

    Non-finishers are placed one below the worst finish of their event-year;
    event-years with no numeric finish at all are dropped.
    """

    grouped: Dict[Tuple[str, str], List[Tuple[FinishResult, Dict[str, float]]]] = defaultdict(list)
    for row in rows:
        if event_id and row_event_id(row) != str(event_id):
            continue
        year = row_year(row)
        if year is None:
            continue
        metrics: Dict[str, float] = {}
        for metric in HISTORICAL_METRICS:
            value = historical_metric_value(row, metric)
            if value is not None:
                metrics[metric.label] = value
        finish = FinishResult(
            player_id=str(row.get("dg_id") or ""),
            finish_position=parse_finish(row.get("fin_text")),
        )
        grouped[(row_event_id(row), year)].append((finish, metrics))

    samples: List[HistoricalSample] = []
    dropped = 0
    for (_, year), entries in grouped.items():
        resolved = with_fallback(finish for finish, _ in entries)
        if not resolved:
            dropped += len(entries)
            continue
        for finish, (_, metrics) in zip(resolved, entries):
            samples.append(HistoricalSample(year=year, finish_position=finish.finish_position, metrics=metrics))
    if dropped:
        logger.debug("Dropped %d historical rounds from event-years without a numeric finish", dropped)
    return samples


def compute_historical_metric_correlations(samples: Sequence[HistoricalSample]) -> HistoricalCorrelations:
    """Per-year correlations with ``-finishPosition`` and a sample-weighted average across years."""

    by_year: Dict[str, List[HistoricalSample]] = defaultdict(list)
    for sample in samples:
        by_year[sample.year].append(sample)

    result = HistoricalCorrelations()
    for year, year_samples in sorted(by_year.items()):
        metrics_for_year: Dict[str, MetricCorrelation] = {}
        for metric in HISTORICAL_METRICS:
            xs: List[float] = []
            ys: List[float] = []
            for sample in year_samples:
                value = sample.metrics.get(metric.label)
                if value is None:
                    continue
                xs.append(-value if metric.lower_is_better else value)
                ys.append(-float(sample.finish_position))
            correlation = pearson(xs, ys) if len(xs) >= MIN_CORRELATION_SAMPLES else 0.0
            metrics_for_year[metric.label] = MetricCorrelation(metric.label, correlation, len(xs))
        result.per_year[year] = metrics_for_year

    for metric in HISTORICAL_METRICS:
        total = 0
        weighted = 0.0
        for metrics_for_year in result.per_year.values():
            entry = metrics_for_year.get(metric.label)
            if entry is None:
                continue
            weighted += entry.correlation * entry.samples
            total += entry.samples
        result.average[metric.label] = MetricCorrelation(metric.label, weighted / total if total else 0.0, total)
    return result

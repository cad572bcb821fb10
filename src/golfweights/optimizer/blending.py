"""Blend metric-importance signals and weight vectors, shrinking the model by CV reliability."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from golfweights.config import MetricConfig, get_metric_config, normalize_metric_label
from golfweights.ingest.validation import (
    VALIDATION_RANGE_PCT,
    DeltaTrendEntry,
    MetricConstraint,
    drift_status_map,
)
from golfweights.models import CvSummary, normalize_weights, split_metric_key
from golfweights.optimizer.signals import (
    LogisticSummary,
    MetricCorrelation,
    SuggestedGroupWeights,
    SuggestedWeights,
)


logger = logging.getLogger(__name__)

AlignmentMap = Dict[str, float]

CURRENT_SIGNAL_WEIGHT = 0.60
VALIDATION_PRIOR_WEIGHT = 0.25
DELTA_TREND_PRIOR_WEIGHT = 0.15
MAX_MODEL_SHARE = 0.35

DEFAULT_DRIFT_STATUS = "WATCH"
DRIFT_STATUS_RANGES: Dict[str, float] = {
    "STABLE": 0.10,
    "WATCH": 0.20,
    "CHRONIC": 0.35,
}


def build_alignment_map(signal: Sequence[MetricCorrelation]) -> AlignmentMap:
    return {normalize_metric_label(entry.label): entry.correlation for entry in signal}


def build_logistic_alignment_map(summary: Optional[LogisticSummary]) -> AlignmentMap:
    """Absolute classifier weights keyed by normalized label."""

    if summary is None or not summary.success:
        return {}
    return {normalize_metric_label(label): abs(weight) for label, weight in zip(summary.labels, summary.weights)}


def blend_alignment_maps(maps: Sequence[Mapping[str, float]], weights: Sequence[float]) -> AlignmentMap:
    """Weighted average over the union of labels; a label missing from a source contributes 0."""

    total = sum(weights) or 1.0
    combined: AlignmentMap = {}
    for alignment, weight in zip(maps, weights):
        if not alignment or weight == 0:
            continue
        for label, value in alignment.items():
            combined[label] = combined.get(label, 0.0) + value * (weight / total)
    return combined


def blend_available_maps(sources: Sequence[Tuple[Mapping[str, float], float]]) -> AlignmentMap:
    """Blend only the non-empty sources, renormalizing their mixing weights."""

    present = [(alignment, weight) for alignment, weight in sources if alignment and weight > 0]
    if not present:
        return {}
    return blend_alignment_maps([alignment for alignment, _ in present], [weight for _, weight in present])


def inverted_label_set(
    signal: Sequence[MetricCorrelation],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Set[str]:
    """Lower-is-better labels whose oriented correlation still came out negative."""

    config = metric_config or get_metric_config()
    inverted: Set[str] = set()
    for entry in signal:
        label = entry.label.strip()
        if label and config.is_lower_better(label) and entry.correlation < 0:
            inverted.add(normalize_metric_label(label))
    return inverted


def apply_inversions(
    metric_weights: Mapping[str, float],
    inverted: Set[str],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, float]:
    updated = dict(metric_weights)
    if not inverted:
        return updated
    config = metric_config or get_metric_config()
    for group in config.groups:
        for spec in group.metrics:
            key = group.metric_key(spec)
            if spec.label in inverted and key in updated:
                updated[key] = -abs(updated[key])
    return updated


def blend_group_weights(
    prior: Mapping[str, float],
    model: Mapping[str, float],
    prior_share: float = 0.6,
    model_share: float = 0.4,
) -> Dict[str, float]:
    keys = list(dict.fromkeys([*prior.keys(), *model.keys()]))
    blended = {key: prior.get(key, 0.0) * prior_share + model.get(key, 0.0) * model_share for key in keys}
    return normalize_weights(blended)


def blend_metric_weights(
    prior: Mapping[str, float],
    model: Mapping[str, float],
    prior_share: float = 0.6,
    model_share: float = 0.4,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, float]:
    """Convex blend per group, renormalized by the group's total absolute weight.

    A group with no signal on either side keeps its prior weights.
    """

    config = metric_config or get_metric_config()
    blended: Dict[str, float] = {}
    for group in config.groups:
        keys = [group.metric_key(spec) for spec in group.metrics]
        values = [prior.get(key, 0.0) * prior_share + model.get(key, 0.0) * model_share for key in keys]
        total_abs = sum(abs(value) for value in values)
        for key, value in zip(keys, values):
            if total_abs > 0:
                blended[key] = value / total_abs
            else:
                blended[key] = prior.get(key, 0.0)
    return blended


def build_filled_group_weights(
    suggested: SuggestedGroupWeights,
    fallback: Mapping[str, float],
) -> Dict[str, float]:
    """Fallback group weights overridden by every suggested group, normalized."""

    merged = dict(fallback)
    merged.update(suggested.weights)
    return normalize_weights(merged)


def build_metric_weights_from_suggested(
    suggested: SuggestedWeights,
    fallback: Mapping[str, float],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, float]:
    """Suggested metric weights normalized per group; unsuggested groups keep ``fallback``.

    A label shared by several groups contributes its suggestion to each of them.
    """

    config = metric_config or get_metric_config()
    result = dict(fallback)
    by_label = {normalize_metric_label(entry.label): entry.weight for entry in suggested.metrics}
    if not by_label:
        return result
    for group in config.groups:
        values = {spec.name: by_label[spec.label] for spec in group.metrics if spec.label in by_label}
        if not values:
            continue
        total = sum(values.values())
        if total <= 0:
            continue
        for spec in group.metrics:
            result[group.metric_key(spec)] = values.get(spec.name, 0.0) / total
    return result


@dataclass(frozen=True)
class ReliabilityThresholds:
    log_loss_good: float = 0.25
    log_loss_bad: float = 0.45
    accuracy_good: float = 0.65
    accuracy_bad: float = 0.52
    min_events: int = 3
    max_events: int = 8
    min_samples: int = 120
    max_samples: int = 350


def _clamp01(value: float) -> float:
    if value != value:
        return 0.0
    return min(1.0, max(0.0, value))


def _score_lower_better(value: Optional[float], good: float, bad: float) -> float:
    if value is None or value != value:
        return 0.0
    if value <= good:
        return 1.0
    if value >= bad:
        return 0.0
    return (bad - value) / (bad - good)


def _score_higher_better(value: Optional[float], good: float, bad: float) -> float:
    if value is None or value != value:
        return 0.0
    if value >= good:
        return 1.0
    if value <= bad:
        return 0.0
    return (value - bad) / (good - bad)


def compute_reliability(summary: Optional[CvSummary], thresholds: Optional[ReliabilityThresholds] = None) -> float:
    """Quality of the cross-validated model in [0, 1].

    The mean of the log-loss and accuracy ramps is multiplied by the event-count
    and sample-count ramps, so any thin dimension pulls the whole score down.
    """

    if summary is None or not summary.success:
        return 0.0
    limits = thresholds or ReliabilityThresholds()
    log_loss_score = _score_lower_better(summary.avg_log_loss, limits.log_loss_good, limits.log_loss_bad)
    accuracy_score = _score_higher_better(summary.avg_accuracy, limits.accuracy_good, limits.accuracy_bad)
    event_span = max(1, limits.max_events - (limits.min_events - 1))
    event_score = _clamp01((summary.event_count - (limits.min_events - 1)) / event_span)
    sample_span = max(1, limits.max_samples - limits.min_samples)
    sample_score = _clamp01((summary.total_samples - limits.min_samples) / sample_span)
    return _clamp01((log_loss_score + accuracy_score) / 2 * event_score * sample_score)


@dataclass(frozen=True)
class ConservativeGroupWeights:
    source: str
    weights: Dict[str, float] = field(default_factory=dict)
    cv_reliability: float = 0.0
    model_share: float = 0.0
    prior_share: float = 1.0

    def ranked(self) -> List[Tuple[str, float]]:
        return sorted(self.weights.items(), key=lambda item: item[1], reverse=True)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "weights": [{"groupName": name, "weight": weight} for name, weight in self.ranked()],
            "cvReliability": self.cv_reliability,
            "modelShare": self.model_share,
            "priorShare": self.prior_share,
        }


def blend_suggested_group_weights_with_cv(
    suggested: SuggestedGroupWeights,
    fallback: Mapping[str, float],
    reliability: float,
    *,
    max_model_share: float = MAX_MODEL_SHARE,
) -> ConservativeGroupWeights:
    """Shrink the suggestion toward the prior template; ``modelShare = maxModelShare * reliability``."""

    if not suggested.weights:
        return ConservativeGroupWeights(source=suggested.source, cv_reliability=reliability)
    model_share = _clamp01(max_model_share * _clamp01(reliability))
    prior_share = 1 - model_share
    filled = build_filled_group_weights(suggested, fallback)
    blended = blend_group_weights(fallback, filled, prior_share, model_share)
    logger.info("Conservative group weights: reliability %.3f, model share %.3f", reliability, model_share)
    return ConservativeGroupWeights(
        source=suggested.source,
        weights=blended,
        cv_reliability=reliability,
        model_share=model_share,
        prior_share=prior_share,
    )


def compute_metric_alignment_score(
    metric_weights: Mapping[str, float],
    group_weights: Mapping[str, float],
    alignment: Mapping[str, float],
) -> float:
    """``sum(eff * corr) / sum(|eff|)`` with ``eff = groupWeight * metricWeight`` over aligned labels."""

    if not metric_weights or not alignment:
        return 0.0
    weighted = 0.0
    total = 0.0
    for key, weight in metric_weights.items():
        group_name, metric_name = split_metric_key(key)
        if not group_name or not metric_name:
            continue
        correlation = alignment.get(normalize_metric_label(metric_name))
        if correlation is None:
            continue
        effective = group_weights.get(group_name, 1.0) * weight
        weighted += effective * correlation
        total += abs(effective)
    return weighted / total if total else 0.0


def drift_range(status: Optional[str]) -> float:
    return DRIFT_STATUS_RANGES.get((status or DEFAULT_DRIFT_STATUS).upper(), VALIDATION_RANGE_PCT)


def adjust_constraints_by_drift(
    constraints: Mapping[str, MetricConstraint],
    trends: Sequence[DeltaTrendEntry],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, MetricConstraint]:
    """Recenter each range on its midpoint with the width its drift status allows."""

    if not trends:
        return dict(constraints)
    statuses = drift_status_map(metric_config or get_metric_config(), trends)
    adjusted: Dict[str, MetricConstraint] = {}
    for key, constraint in constraints.items():
        _, metric_name = split_metric_key(key)
        range_pct = drift_range(statuses.get(metric_name.strip()) or DEFAULT_DRIFT_STATUS)
        center = constraint.center
        adjusted[key] = MetricConstraint(minimum=max(0.0, center * (1 - range_pct)), maximum=center * (1 + range_pct))
    return adjusted


def summarize_drift_guardrails(
    constraints: Mapping[str, MetricConstraint],
    trends: Sequence[DeltaTrendEntry],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> dict:
    statuses = drift_status_map(metric_config or get_metric_config(), trends or [])
    counts = {status: 0 for status in DRIFT_STATUS_RANGES}
    total = 0
    for key in constraints:
        _, metric_name = split_metric_key(key)
        if not metric_name:
            continue
        status = statuses.get(metric_name.strip()) or DEFAULT_DRIFT_STATUS
        counts[status] = counts.get(status, 0) + 1
        total += 1
    return {"totalConstrained": total, "statusCounts": counts, "ranges": dict(DRIFT_STATUS_RANGES)}

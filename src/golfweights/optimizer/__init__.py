"""Signal construction, blending, weight search and multi-year validation."""

from .blending import (
    CURRENT_SIGNAL_WEIGHT,
    DELTA_TREND_PRIOR_WEIGHT,
    MAX_MODEL_SHARE,
    VALIDATION_PRIOR_WEIGHT,
    ConservativeGroupWeights,
    ReliabilityThresholds,
    adjust_constraints_by_drift,
    apply_inversions,
    blend_alignment_maps,
    blend_available_maps,
    blend_group_weights,
    blend_metric_weights,
    blend_suggested_group_weights_with_cv,
    build_alignment_map,
    build_filled_group_weights,
    build_logistic_alignment_map,
    build_metric_weights_from_suggested,
    compute_metric_alignment_score,
    compute_reliability,
    drift_range,
    inverted_label_set,
    summarize_drift_guardrails,
)
from .search import (
    GroupTuningResult,
    MissingResultsError,
    ObjectiveWeights,
    RandomSource,
    SeededRandomSource,
    SystemRandomSource,
    WeightSearchEngine,
    apply_metric_constraints,
    compute_weight_deltas,
    random_source,
    select_optimizable_groups,
    top20_composite_score,
    tune_group_weights,
)
from .signals import (
    LogisticSummary,
    MetricCorrelation,
    SuggestedGroupWeights,
    SuggestedWeights,
    blend_correlation_lists,
    blend_single_metric_correlation,
    build_feature_vector,
    build_historical_metric_samples,
    build_suggested_group_weights,
    build_suggested_metric_weights,
    build_top_n_samples,
    compute_historical_metric_correlations,
    correlation_per_metric,
    cross_validate_classifier,
    keep_trainable_events,
    top_n_correlation_per_metric,
    train_top_n_classifier,
)
from .validation import (
    MultiYearValidator,
    aggregate_evaluations,
    evaluate_rankings,
    remove_approach_group_weights,
)

__all__ = [
    "CURRENT_SIGNAL_WEIGHT",
    "DELTA_TREND_PRIOR_WEIGHT",
    "MAX_MODEL_SHARE",
    "VALIDATION_PRIOR_WEIGHT",
    "GroupTuningResult",
    "blend_correlation_lists",
    "blend_single_metric_correlation",
    "build_filled_group_weights",
    "build_historical_metric_samples",
    "build_metric_weights_from_suggested",
    "build_top_n_samples",
    "compute_historical_metric_correlations",
    "keep_trainable_events",
    "ConservativeGroupWeights",
    "LogisticSummary",
    "MetricCorrelation",
    "MissingResultsError",
    "MultiYearValidator",
    "ObjectiveWeights",
    "RandomSource",
    "ReliabilityThresholds",
    "SeededRandomSource",
    "SuggestedGroupWeights",
    "SuggestedWeights",
    "SystemRandomSource",
    "WeightSearchEngine",
    "adjust_constraints_by_drift",
    "aggregate_evaluations",
    "apply_inversions",
    "apply_metric_constraints",
    "blend_alignment_maps",
    "blend_available_maps",
    "blend_group_weights",
    "blend_metric_weights",
    "blend_suggested_group_weights_with_cv",
    "build_alignment_map",
    "build_feature_vector",
    "build_logistic_alignment_map",
    "build_suggested_group_weights",
    "build_suggested_metric_weights",
    "compute_metric_alignment_score",
    "compute_reliability",
    "compute_weight_deltas",
    "correlation_per_metric",
    "cross_validate_classifier",
    "drift_range",
    "evaluate_rankings",
    "inverted_label_set",
    "random_source",
    "remove_approach_group_weights",
    "select_optimizable_groups",
    "summarize_drift_guardrails",
    "top20_composite_score",
    "top_n_correlation_per_metric",
    "train_top_n_classifier",
    "tune_group_weights",
]

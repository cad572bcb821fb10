"""Configuration helpers for the metric hierarchy and built-in templates."""

from .metrics import (
    APPROACH_GROUPS,
    GENERATED_METRIC_LABELS,
    HISTORICAL_CORE_LABELS,
    HISTORICAL_METRICS,
    HistoricalMetric,
    MetricConfig,
    MetricDirection,
    MetricGroup,
    MetricSpec,
    get_label_group,
    get_metric_config,
    normalize_metric_label,
)
from .templates import COURSE_TYPES, get_builtin_template, iter_builtin_templates

__all__ = [
    "APPROACH_GROUPS",
    "COURSE_TYPES",
    "GENERATED_METRIC_LABELS",
    "HISTORICAL_CORE_LABELS",
    "HISTORICAL_METRICS",
    "HistoricalMetric",
    "MetricConfig",
    "MetricDirection",
    "MetricGroup",
    "MetricSpec",
    "get_builtin_template",
    "get_label_group",
    "get_metric_config",
    "iter_builtin_templates",
    "normalize_metric_label",
]

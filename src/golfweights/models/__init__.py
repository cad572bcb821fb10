"""Canonical records shared across ingestion, ranking and optimizer layers."""

from .player import FinishResult, MetricVector, RankedPlayer
from .results import (
    CvSummary,
    Evaluation,
    LogisticEvaluation,
    LogisticModel,
    OptimizedResult,
    TemplateComparison,
    TopNDetails,
    evaluations_to_dict,
)
from .template import WeightTemplate, normalize_weights, split_metric_key

__all__ = [
    "CvSummary",
    "Evaluation",
    "FinishResult",
    "LogisticEvaluation",
    "LogisticModel",
    "MetricVector",
    "OptimizedResult",
    "RankedPlayer",
    "TemplateComparison",
    "TopNDetails",
    "WeightTemplate",
    "evaluations_to_dict",
    "normalize_weights",
    "split_metric_key",
]

"""Result records produced by the statistics kernel, the search engine and the validator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class LogisticModel:
    success: bool
    samples: int
    weights: Tuple[float, ...] = ()
    bias: float = 0.0
    means: Tuple[float, ...] = ()
    stds: Tuple[float, ...] = ()
    l2: float = 0.0
    message: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "message": self.message, "samples": self.samples}
        return {
            "success": True,
            "samples": self.samples,
            "weights": list(self.weights),
            "bias": self.bias,
            "means": list(self.means),
            "stds": list(self.stds),
            "l2": self.l2,
        }


@dataclass(frozen=True)
class LogisticEvaluation:
    accuracy: float
    log_loss: float
    samples: int

    def to_dict(self) -> dict:
        return {"accuracy": self.accuracy, "logLoss": self.log_loss, "samples": self.samples}


@dataclass(frozen=True)
class CvSummary:
    success: bool
    event_count: int = 0
    total_samples: int = 0
    best_l2: Optional[float] = None
    avg_log_loss: Optional[float] = None
    avg_accuracy: Optional[float] = None
    folds_used: int = 0
    message: Optional[str] = None
    note: Optional[str] = None
    final_model: Optional[LogisticModel] = None

    def to_dict(self) -> dict:
        payload: dict = {
            "success": self.success,
            "eventCount": self.event_count,
            "totalSamples": self.total_samples,
        }
        if self.success:
            payload.update(
                {
                    "bestL2": self.best_l2,
                    "avgLogLoss": self.avg_log_loss,
                    "avgAccuracy": self.avg_accuracy,
                    "foldsUsed": self.folds_used,
                }
            )
        if self.message:
            payload["message"] = self.message
        if self.note:
            payload["note"] = self.note
        return payload


@dataclass(frozen=True)
class TopNDetails:
    predicted: Tuple[str, ...]
    actual: Tuple[str, ...]
    overlap: Tuple[str, ...]

    @property
    def overlap_count(self) -> int:
        return len(self.overlap)

    def to_dict(self) -> dict:
        return {
            "predicted": list(self.predicted),
            "actual": list(self.actual),
            "overlap": list(self.overlap),
            "overlapCount": self.overlap_count,
        }


@dataclass(frozen=True)
class Evaluation:
    correlation: float = 0.0
    rmse: float = 0.0
    r_squared: float = 0.0
    mean_error: float = 0.0
    std_dev_error: float = 0.0
    mae: float = 0.0
    top10: Optional[float] = None
    top20: Optional[float] = None
    top20_weighted_score: Optional[float] = None
    matched_players: int = 0
    top10_details: Optional[TopNDetails] = None
    top20_details: Optional[TopNDetails] = None

    def to_dict(self) -> dict:
        payload = {
            "correlation": self.correlation,
            "rmse": self.rmse,
            "rSquared": self.r_squared,
            "meanError": self.mean_error,
            "stdDevError": self.std_dev_error,
            "mae": self.mae,
            "top10": self.top10,
            "top20": self.top20,
            "top20WeightedScore": self.top20_weighted_score,
            "matchedPlayers": self.matched_players,
        }
        if self.top10_details is not None:
            payload["top10Details"] = self.top10_details.to_dict()
        if self.top20_details is not None:
            payload["top20Details"] = self.top20_details.to_dict()
        return payload


@dataclass(frozen=True)
class OptimizedResult:
    group_weights: Dict[str, float]
    metric_weights: Dict[str, float]
    evaluation: Evaluation
    alignment_score: float
    top20_score: float
    combined_score: float
    trial: int = -1

    @property
    def correlation(self) -> float:
        return self.evaluation.correlation

    @property
    def is_baseline(self) -> bool:
        return self.trial < 0

    def to_dict(self) -> dict:
        payload = self.evaluation.to_dict()
        payload.update(
            {
                "weights": dict(self.group_weights),
                "metricWeights": dict(self.metric_weights),
                "alignmentScore": self.alignment_score,
                "top20Score": self.top20_score,
                "combinedScore": self.combined_score,
                "trial": self.trial,
            }
        )
        return payload


@dataclass
class TemplateComparison:
    name: str
    evaluation: Evaluation
    evaluation_current: Optional[Evaluation]
    yearly: Dict[str, Evaluation] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "evaluation": self.evaluation.to_dict(),
            "evaluationCurrentYear": self.evaluation_current.to_dict() if self.evaluation_current else None,
            "yearly": {year: evaluation.to_dict() for year, evaluation in self.yearly.items()},
        }


def evaluations_to_dict(per_year: Dict[str, Evaluation]) -> Dict[str, dict]:
    return {year: evaluation.to_dict() for year, evaluation in sorted(per_year.items())}
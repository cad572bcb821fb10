"""Randomized weight search around a baseline template."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from golfweights.config import MetricConfig, get_metric_config
from golfweights.ingest.validation import MetricConstraint
from golfweights.models import Evaluation, FinishResult, OptimizedResult, RankedPlayer, WeightTemplate, normalize_weights
from golfweights.optimizer.blending import compute_metric_alignment_score
from golfweights.optimizer.validation import evaluate_rankings


logger = logging.getLogger(__name__)

GROUP_RANGE_PCT = 0.20
METRIC_RANGE_PCT = 0.15
GROUP_WEIGHT_FLOOR = 0.001
METRIC_WEIGHT_FLOOR = 0.0001
DEFAULT_TRIALS = 1500

GROUP_TUNE_RANGE_PCT = 0.25
GROUP_TUNE_TRIALS = 400
GROUP_TUNE_FIXED = 3

PROGRESS_INTERVAL = 100

# (group weights, metric weights) -> ranking of the current field.
CandidateRanker = Callable[[Mapping[str, float], Mapping[str, float]], Sequence[RankedPlayer]]


class MissingResultsError(RuntimeError):
    """Raised when a weight search is attempted without any finish results."""

    def __init__(self, message: str = "No current-season results to optimize against"):
        super().__init__(message)
        self.message = message


class RandomSource(Protocol):
    def random(self) -> float:
        """Return a float uniformly drawn from [0, 1)."""


class SeededRandomSource:
    """Reproducible draws; two sources with the same seed yield the same sequence."""

    def __init__(self, seed: object) -> None:
        self.seed = seed
        self._rng = random.Random(str(seed))

    def random(self) -> float:
        return self._rng.random()


class SystemRandomSource:
    def __init__(self) -> None:
        self._rng = random.SystemRandom()

    def random(self) -> float:
        return self._rng.random()


def random_source(seed: Optional[object]) -> RandomSource:
    if seed is None or str(seed).strip() == "":
        return SystemRandomSource()
    return SeededRandomSource(seed)


@dataclass(frozen=True)
class ObjectiveWeights:
    correlation: float = 0.3
    top20: float = 0.5
    alignment: float = 0.2

    def to_dict(self) -> dict:
        return {"correlation": self.correlation, "top20": self.top20, "alignment": self.alignment}


def top20_composite_score(evaluation: Optional[Evaluation]) -> float:
    """Mean of Top-20 hit rate and Top-20 weighted score, both rescaled to 0..1.

    When only one of the two is available it is used alone, which shifts the
    effective objective, so that case is logged.
    """

    if evaluation is None:
        return 0.0
    accuracy = evaluation.top20 / 100 if evaluation.top20 is not None else None
    weighted = evaluation.top20_weighted_score / 100 if evaluation.top20_weighted_score is not None else None
    if accuracy is not None and weighted is not None:
        return (accuracy + weighted) / 2
    if accuracy is not None:
        logger.info("Top-20 weighted score unavailable; composite uses hit rate only")
        return accuracy
    if weighted is not None:
        logger.info("Top-20 hit rate unavailable; composite uses weighted score only")
        return weighted
    return 0.0


def combined_objective_score(
    evaluation: Evaluation,
    alignment_score: float,
    objective: ObjectiveWeights,
) -> float:
    return (
        objective.correlation * (evaluation.correlation + 1) / 2
        + objective.top20 * top20_composite_score(evaluation)
        + objective.alignment * (alignment_score + 1) / 2
    )


def perturb_group_weights(
    group_weights: Mapping[str, float],
    rng: RandomSource,
    range_pct: float = GROUP_RANGE_PCT,
) -> Dict[str, float]:
    """Nudge two or three distinct, randomly chosen groups and renormalize."""

    weights = dict(group_weights)
    pool = list(weights)
    if not pool:
        return weights
    adjust_count = min(len(pool), 2 + int(rng.random() * 2))
    for _ in range(adjust_count):
        name = pool.pop(int(rng.random() * len(pool)))
        adjustment = (rng.random() * 2 - 1) * range_pct
        weights[name] = max(GROUP_WEIGHT_FLOOR, weights[name] * (1 + adjustment))
    return normalize_weights(weights)


def adjust_metric_weights(
    metric_weights: Mapping[str, float],
    rng: RandomSource,
    max_adjustment: float = METRIC_RANGE_PCT,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, float]:
    """Perturb every metric inside each group by up to ``max_adjustment`` and renormalize per group."""

    config = metric_config or get_metric_config()
    adjusted = dict(metric_weights)
    for group in config.groups:
        keys = [group.metric_key(spec) for spec in group.metrics]
        if not keys:
            continue
        updated = []
        for key in keys:
            adjustment = (rng.random() * 2 - 1) * max_adjustment
            updated.append(max(METRIC_WEIGHT_FLOOR, float(adjusted.get(key) or 0.0) * (1 + adjustment)))
        total = sum(updated)
        for key, value in zip(keys, updated):
            adjusted[key] = value / total if total > 0 else value
    return adjusted


def apply_metric_constraints(
    metric_weights: Mapping[str, float],
    constraints: Mapping[str, MetricConstraint],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, float]:
    """Clamp each constrained metric into its range, then renormalize the group.

    Renormalizing after the clamp can push a value slightly outside its range
    again; that imprecision is accepted.
    """

    if not constraints:
        return dict(metric_weights)
    config = metric_config or get_metric_config()
    updated = dict(metric_weights)
    for group in config.groups:
        keys = [group.metric_key(spec) for spec in group.metrics]
        clamped = []
        for key in keys:
            value = float(updated.get(key) or 0.0)
            constraint = constraints.get(key)
            clamped.append(constraint.clamp(value) if constraint else value)
        total = sum(clamped)
        if total <= 0:
            continue
        for key, value in zip(keys, clamped):
            updated[key] = value / total
    return updated


class WeightSearchEngine:
    """Score weight candidates against current results and keep the best.

    The baseline itself is scored first (trial ``-1``) and only a strictly
    better candidate replaces it, so the search never returns something worse
    than leaving the template alone.
    """

    def __init__(
        self,
        ranker: CandidateRanker,
        results: Sequence[FinishResult],
        *,
        alignment: Optional[Mapping[str, float]] = None,
        objective: Optional[ObjectiveWeights] = None,
        group_range_pct: float = GROUP_RANGE_PCT,
        metric_range_pct: float = METRIC_RANGE_PCT,
        metric_config: Optional[MetricConfig] = None,
    ) -> None:
        self.ranker = ranker
        self.results = list(results)
        self.alignment = dict(alignment or {})
        self.objective = objective or ObjectiveWeights()
        self.group_range_pct = group_range_pct
        self.metric_range_pct = metric_range_pct
        self.metric_config = metric_config or get_metric_config()

    def score(
        self,
        group_weights: Mapping[str, float],
        metric_weights: Mapping[str, float],
        *,
        trial: int = -1,
    ) -> OptimizedResult:
        ranked = self.ranker(group_weights, metric_weights)
        evaluation = evaluate_rankings(ranked, self.results, include_top_n=True)
        alignment_score = (
            compute_metric_alignment_score(metric_weights, group_weights, self.alignment) if self.alignment else 0.0
        )
        return OptimizedResult(
            group_weights=dict(group_weights),
            metric_weights=dict(metric_weights),
            evaluation=evaluation,
            alignment_score=alignment_score,
            top20_score=top20_composite_score(evaluation),
            combined_score=combined_objective_score(evaluation, alignment_score, self.objective),
            trial=trial,
        )

    def candidate(
        self,
        baseline: WeightTemplate,
        rng: RandomSource,
        constraints: Optional[Mapping[str, MetricConstraint]] = None,
    ) -> Tuple[Dict[str, float], Dict[str, float]]:
        group_weights = perturb_group_weights(baseline.group_weights, rng, self.group_range_pct)
        metric_weights = adjust_metric_weights(
            baseline.metric_weights,
            rng,
            self.metric_range_pct,
            metric_config=self.metric_config,
        )
        if constraints:
            metric_weights = apply_metric_constraints(metric_weights, constraints, metric_config=self.metric_config)
        return group_weights, metric_weights

    def search(
        self,
        baseline: WeightTemplate,
        trials: int,
        rng: RandomSource,
        *,
        constraints: Optional[Mapping[str, MetricConstraint]] = None,
    ) -> OptimizedResult:
        if not self.results:
            raise MissingResultsError()

        best = self.score(normalize_weights(baseline.group_weights), baseline.metric_weights, trial=-1)
        logger.info(
            "Search baseline %s: corr %.4f, combined %.4f",
            baseline.name,
            best.correlation,
            best.combined_score,
        )
        for trial in range(max(0, trials)):
            group_weights, metric_weights = self.candidate(baseline, rng, constraints)
            result = self.score(group_weights, metric_weights, trial=trial)
            if _is_better(result, best):
                best = result
            if (trial + 1) % PROGRESS_INTERVAL == 0:
                logger.info("Tested %d/%d candidates", trial + 1, trials)

        logger.info(
            "Best candidate: trial %d, corr %.4f, top20 composite %.3f, combined %.4f",
            best.trial,
            best.correlation,
            best.top20_score,
            best.combined_score,
        )
        return best


def _is_better(candidate: OptimizedResult, best: OptimizedResult) -> bool:
    if candidate.combined_score != best.combined_score:
        return candidate.combined_score > best.combined_score
    return candidate.correlation > best.correlation


@dataclass(frozen=True)
class GroupTuningResult:
    group_weights: Dict[str, float]
    evaluation: Evaluation

    def to_dict(self) -> dict:
        return {"groupWeights": dict(self.group_weights), "evaluation": self.evaluation.to_dict()}


def select_optimizable_groups(group_weights: Mapping[str, float], fixed_count: int = GROUP_TUNE_FIXED) -> List[str]:
    """Every group except the ``fixed_count`` heaviest ones."""

    ordered = sorted(group_weights.items(), key=lambda item: item[1] or 0.0, reverse=True)
    fixed = {name for name, _ in ordered[:fixed_count]}
    return [name for name, _ in ordered if name not in fixed]


def _tuning_key(result: GroupTuningResult) -> tuple:
    evaluation = result.evaluation
    top20 = evaluation.top20 if evaluation.top20 is not None else float("-inf")
    return (-top20, evaluation.rmse, -evaluation.correlation)


def tune_group_weights(
    seed_weights: Mapping[str, float],
    evaluate: Callable[[Mapping[str, float]], Evaluation],
    rng: RandomSource,
    *,
    optimizable_groups: Optional[Iterable[str]] = None,
    trials: int = GROUP_TUNE_TRIALS,
    range_pct: float = GROUP_TUNE_RANGE_PCT,
) -> Optional[GroupTuningResult]:
    """Perturb the lower-importance groups and keep the best Top-20 outcome.

    Candidates are ordered by Top-20 hit rate, then RMSE, then correlation.
    """

    seed = normalize_weights(seed_weights)
    groups = list(optimizable_groups) if optimizable_groups is not None else select_optimizable_groups(seed)
    best: Optional[GroupTuningResult] = None
    for _ in range(max(0, trials)):
        candidate = dict(seed)
        for name in groups:
            base = candidate.get(name) or METRIC_WEIGHT_FLOOR
            adjustment = (rng.random() * 2 - 1) * range_pct
            candidate[name] = max(METRIC_WEIGHT_FLOOR, base * (1 + adjustment))
        normalized = normalize_weights(candidate)
        result = GroupTuningResult(group_weights=normalized, evaluation=evaluate(normalized))
        if best is None or _tuning_key(result) < _tuning_key(best):
            best = result
    if best is not None:
        logger.info(
            "Group tuning best: top10 %s, top20 %s, rmse %.2f, corr %.4f",
            best.evaluation.top10,
            best.evaluation.top20,
            best.evaluation.rmse,
            best.evaluation.correlation,
        )
    return best


def compute_weight_deltas(
    baseline: Mapping[str, float],
    optimized: Mapping[str, float],
) -> Dict[str, dict]:
    deltas: Dict[str, dict] = {}
    for name in baseline:
        base = float(baseline.get(name) or 0.0)
        value = float(optimized.get(name) or 0.0)
        deltas[name] = {
            "baseline": base,
            "optimized": value,
            "delta": value - base,
            "deltaPct": None if base == 0 else (value - base) / base,
        }
    return deltas

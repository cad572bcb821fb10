"""Evaluate rankings against finishes and backtest weights across event years."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from golfweights.config import MetricConfig, get_metric_config
from golfweights.models import Evaluation, FinishResult, RankedPlayer, TopNDetails, normalize_weights
from golfweights.optimizer.signals import finish_lookup
from golfweights.stats import ndcg_weighted_top_n, pearson


logger = logging.getLogger(__name__)

# (year, group weights, metric weights) -> ranking for that year's field.
YearRanker = Callable[[str, Mapping[str, float], Mapping[str, float]], Sequence[RankedPlayer]]


def remove_approach_group_weights(
    group_weights: Mapping[str, float],
    *,
    metric_config: Optional[MetricConfig] = None,
) -> Dict[str, float]:
    """Zero the course-setup approach groups and renormalize the rest."""

    config = metric_config or get_metric_config()
    adjusted = {name: (0.0 if name in config.approach_groups else weight) for name, weight in group_weights.items()}
    return normalize_weights(adjusted)


def _ordered(ranked: Sequence[RankedPlayer]) -> List[RankedPlayer]:
    return sorted(ranked, key=lambda player: player.rank)


def top_n_accuracy(ranked: Sequence[RankedPlayer], results: Iterable[FinishResult], n: int) -> float:
    """Percent of the predicted top ``n`` who actually finished inside the top ``n``."""

    if not ranked:
        return 0.0
    predicted = {player.player_id for player in ranked if player.rank <= n}
    finishes = finish_lookup(results)
    hits = sum(1 for player_id in predicted if finishes.get(player_id, n + 1) <= n)
    return hits / (len(predicted) or n) * 100.0


def top_n_weighted_score(ranked: Sequence[RankedPlayer], results: Iterable[FinishResult], n: int) -> float:
    finishes = finish_lookup(results)
    if not ranked or not finishes:
        return 0.0
    return ndcg_weighted_top_n([player.player_id for player in _ordered(ranked)], finishes, n)


def top_n_details(ranked: Sequence[RankedPlayer], results: Iterable[FinishResult], n: int) -> TopNDetails:
    predicted = tuple(player.player_id for player in _ordered(ranked)[:n])
    actual_sorted = sorted(
        (result for result in results if result.finish_position and result.finish_position <= n),
        key=lambda result: result.finish_position,
    )
    actual = tuple(result.player_id for result in actual_sorted)
    actual_set = set(actual)
    return TopNDetails(
        predicted=predicted,
        actual=actual,
        overlap=tuple(player_id for player_id in predicted if player_id in actual_set),
    )


def evaluate_rankings(
    ranked: Sequence[RankedPlayer],
    results: Sequence[FinishResult],
    *,
    include_top_n: bool = True,
    include_details: bool = False,
) -> Evaluation:
    """Compare predicted rank with finish position for every matched player."""

    finishes = finish_lookup(results)
    ranks: List[float] = []
    positions: List[float] = []
    for player in ranked:
        position = finishes.get(player.player_id)
        if position is None:
            continue
        ranks.append(float(player.rank))
        positions.append(float(position))

    if not ranks:
        zero = 0.0 if include_top_n else None
        return Evaluation(top10=zero, top20=zero, top20_weighted_score=zero)

    errors = [rank - position for rank, position in zip(ranks, positions)]
    count = len(errors)
    mean_error = sum(errors) / count
    correlation = pearson(ranks, positions)
    evaluation = Evaluation(
        correlation=correlation,
        rmse=math.sqrt(sum(error * error for error in errors) / count),
        r_squared=correlation * correlation,
        mean_error=mean_error,
        std_dev_error=math.sqrt(sum((error - mean_error) ** 2 for error in errors) / count),
        mae=sum(abs(error) for error in errors) / count,
        matched_players=count,
    )
    if not include_top_n:
        return evaluation

    evaluation = replace(
        evaluation,
        top10=top_n_accuracy(ranked, results, 10),
        top20=top_n_accuracy(ranked, results, 20),
        top20_weighted_score=top_n_weighted_score(ranked, results, 20),
    )
    if include_details:
        evaluation = replace(
            evaluation,
            top10_details=top_n_details(ranked, results, 10),
            top20_details=top_n_details(ranked, results, 20),
        )
    return evaluation


def _weighted_optional(per_year: Iterable[Evaluation], attribute: str) -> Optional[float]:
    total = 0.0
    weight = 0
    for evaluation in per_year:
        value = getattr(evaluation, attribute)
        if value is None or not evaluation.matched_players:
            continue
        total += value * evaluation.matched_players
        weight += evaluation.matched_players
    return total / weight if weight else None


def aggregate_evaluations(per_year: Mapping[str, Evaluation]) -> Evaluation:
    """Sample-size weighted mean across years; Top-N fields absent everywhere stay ``None``."""

    evaluations = list(per_year.values())
    matched = sum(evaluation.matched_players for evaluation in evaluations)
    if matched == 0:
        return Evaluation()

    def weighted(attribute: str) -> float:
        return sum(getattr(evaluation, attribute) * evaluation.matched_players for evaluation in evaluations) / matched

    return Evaluation(
        correlation=weighted("correlation"),
        rmse=weighted("rmse"),
        r_squared=weighted("r_squared"),
        mean_error=weighted("mean_error"),
        std_dev_error=weighted("std_dev_error"),
        mae=weighted("mae"),
        top10=_weighted_optional(evaluations, "top10"),
        top20=_weighted_optional(evaluations, "top20"),
        top20_weighted_score=_weighted_optional(evaluations, "top20_weighted_score"),
        matched_players=matched,
    )


class MultiYearValidator:
    """Re-rank every event year with candidate weights and evaluate against that year's finishes.

    Approach groups only describe the current course setup, so every other
    year is ranked with them zeroed out.
    """

    def __init__(
        self,
        ranker: YearRanker,
        current_season: str,
        *,
        metric_config: Optional[MetricConfig] = None,
    ) -> None:
        self.ranker = ranker
        self.current_season = str(current_season)
        self.metric_config = metric_config or get_metric_config()

    def weights_for_year(self, year: str, group_weights: Mapping[str, float]) -> Dict[str, float]:
        if str(year) == self.current_season:
            return dict(group_weights)
        return remove_approach_group_weights(group_weights, metric_config=self.metric_config)

    def validate(
        self,
        group_weights: Mapping[str, float],
        metric_weights: Mapping[str, float],
        years: Iterable[str],
        results_by_year: Mapping[str, Sequence[FinishResult]],
        *,
        fallback_results: Sequence[FinishResult] = (),
        top_n_current_only: bool = False,
    ) -> Dict[str, Evaluation]:
        per_year: Dict[str, Evaluation] = {}
        for year in sorted(str(year) for year in years):
            results = results_by_year.get(year) or fallback_results
            if not results:
                logger.debug("No results for %s; skipping year", year)
                continue
            is_current = year == self.current_season
            ranked = self.ranker(year, self.weights_for_year(year, group_weights), metric_weights)
            include_top_n = is_current or not top_n_current_only
            per_year[year] = evaluate_rankings(
                ranked,
                results,
                include_top_n=include_top_n,
                include_details=include_top_n,
            )
        return per_year

    @staticmethod
    def aggregate(per_year: Mapping[str, Evaluation]) -> Evaluation:
        return aggregate_evaluations(per_year)

"""Reference ranking engine: aggregate round metrics per player and score them with a template.

Ranking is split in two so the optimizer can re-score thousands of weight
candidates cheaply: :func:`build_metric_table` aggregates and standardizes the
field once for a given set of rounds, and :func:`score_players` turns a
template into a ranking with a single matrix-vector product.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from golfweights.config import HISTORICAL_METRICS, MetricConfig, get_metric_config
from golfweights.ingest.rounds import (
    FieldPlayer,
    Row,
    historical_metric_value,
    parse_float,
    row_event_id,
    row_player_id,
)
from golfweights.models import MetricVector, RankedPlayer, WeightTemplate


logger = logging.getLogger(__name__)

APPROACH_SHOTS_PER_ROUND = 18
COURSE_SETUP_KEYS = ("under100", "from100to150", "from150to200", "over200")

# Label prefix -> DataGolf approach-skill bucket.
APPROACH_BUCKETS: Tuple[Tuple[str, str], ...] = (
    ("Approach <100", "50_100_fw"),
    ("Approach <150 FW", "100_150_fw"),
    ("Approach <150 Rough", "under_150_rgh"),
    ("Approach >150 Rough", "over_150_rgh"),
    ("Approach <200 FW", "150_200_fw"),
    ("Approach >200 FW", "over_200_fw"),
)

_SCORING_SETUP_METRICS = (
    "Scoring: Approach <100 SG",
    "Scoring: Approach <150 FW SG",
    "Scoring: Approach <150 Rough SG",
    "Scoring: Approach <200 FW SG",
    "Scoring: Approach >200 FW SG",
    "Scoring: Approach >150 Rough SG",
)
_MANAGEMENT_SETUP_METRICS = (
    "Course Management: Approach <100 Prox",
    "Course Management: Approach <150 FW Prox",
    "Course Management: Approach <150 Rough Prox",
    "Course Management: Approach <200 FW Prox",
    "Course Management: Approach >200 FW Prox",
    "Course Management: Approach >150 Rough Prox",
)


@dataclass(frozen=True)
class RankingRuntime:
    similar_courses_weight: float = 0.3
    putting_courses_weight: float = 0.35
    course_setup_weights: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True, eq=False)
class PlayerMetricTable:
    """Aggregated field metrics; ``values`` holds NaN where a metric is missing."""

    player_ids: Tuple[str, ...]
    names: Tuple[str, ...]
    labels: Tuple[str, ...]
    values: np.ndarray
    standardized: np.ndarray
    vectors: Tuple[MetricVector, ...]

    def __len__(self) -> int:
        return len(self.player_ids)

    def label_index(self) -> Dict[str, int]:
        return {label: idx for idx, label in enumerate(self.labels)}


def apply_shot_distribution(
    metric_weights: Mapping[str, float],
    course_setup_weights: Optional[Mapping[str, float]],
) -> Dict[str, float]:
    """Redistribute the Scoring and Course Management approach weights by course setup.

    Each group's approach block keeps its total absolute weight and the sign of
    every metric; the magnitude is re-split by the share of approach shots in
    each distance band.
    """

    adjusted = dict(metric_weights)
    setup = course_setup_weights or {}
    shares = [float(setup.get(key) or 0.0) for key in COURSE_SETUP_KEYS]
    total = sum(shares)
    if total <= 0:
        return adjusted
    under100, mid, long_, over200 = (share / total for share in shares)
    split = (under100, mid / 2, mid / 2, long_, over200 / 2, over200 / 2)

    for group_name, metric_names in (
        ("Scoring", _SCORING_SETUP_METRICS),
        ("Course Management", _MANAGEMENT_SETUP_METRICS),
    ):
        keys = [f"{group_name}::{name}" for name in metric_names]
        current = [float(adjusted.get(key) or 0.0) for key in keys]
        total_abs = sum(abs(value) for value in current)
        if total_abs <= 0:
            continue
        for key, value, share in zip(keys, current, split):
            sign = -1.0 if value < 0 else 1.0
            adjusted[key] = share * total_abs * sign
    return adjusted


def _round_weights(
    event_id: str,
    similar_course_ids: Collection[str],
    putting_course_ids: Collection[str],
    runtime: RankingRuntime,
) -> Tuple[float, float]:
    base = 1.0 + (runtime.similar_courses_weight if event_id in similar_course_ids else 0.0)
    putting = base + (runtime.putting_courses_weight if event_id in putting_course_ids else 0.0)
    return base, putting


def _average_round_metrics(
    rounds: Iterable[Row],
    similar_course_ids: Collection[str],
    putting_course_ids: Collection[str],
    runtime: RankingRuntime,
) -> Dict[str, Optional[float]]:
    sums: Dict[str, float] = defaultdict(float)
    weights: Dict[str, float] = defaultdict(float)
    for row in rounds:
        base, putting = _round_weights(row_event_id(row), similar_course_ids, putting_course_ids, runtime)
        for metric in HISTORICAL_METRICS:
            value = historical_metric_value(row, metric)
            if value is None:
                continue
            weight = putting if metric.label == "SG Putting" else base
            sums[metric.label] += value * weight
            weights[metric.label] += weight
    return {label: sums[label] / weights[label] for label in sums if weights[label] > 0}


def _approach_metrics(row: Optional[Row]) -> Dict[str, Optional[float]]:
    if row is None:
        return {}
    values: Dict[str, Optional[float]] = {}
    for prefix, bucket in APPROACH_BUCKETS:
        gir = parse_float(row.get(f"{bucket}_gir_rate"))
        if gir is not None and gir > 1:
            gir /= 100.0
        sg = parse_float(row.get(f"{bucket}_sg_per_shot"))
        values[f"{prefix} GIR"] = gir
        values[f"{prefix} SG"] = sg * APPROACH_SHOTS_PER_ROUND if sg is not None else None
        values[f"{prefix} Prox"] = parse_float(row.get(f"{bucket}_proximity_per_shot"))
    return values


def birdie_chances_created(
    metrics: Mapping[str, Optional[float]],
    course_setup_weights: Optional[Mapping[str, float]] = None,
) -> Optional[float]:
    """Composite of distance-weighted GIR, approach quality, putting and scoring."""

    if metrics.get("SG Putting") is None and metrics.get("Scoring Average") is None:
        return None

    def get(label: str, default: float = 0.0) -> float:
        value = metrics.get(label)
        return default if value is None else value

    setup = {key: float((course_setup_weights or {}).get(key) or 0.0) for key in COURSE_SETUP_KEYS}
    if sum(setup.values()) <= 0:
        setup = {key: 0.25 for key in COURSE_SETUP_KEYS}
    fairway = get("Driving Accuracy") or 0.6
    rough = 1 - fairway

    def weighted(kind: str) -> float:
        return (
            get(f"Approach <100 {kind}") * setup["under100"]
            + get(f"Approach <150 FW {kind}") * setup["from100to150"] * fairway
            + get(f"Approach <150 Rough {kind}") * setup["from100to150"] * rough
            + get(f"Approach <200 FW {kind}") * setup["from150to200"] * fairway
            + get(f"Approach >150 Rough {kind}") * (setup["from150to200"] + setup["over200"]) * rough
            + get(f"Approach >200 FW {kind}") * setup["over200"] * fairway
        )

    approach = weighted("SG") - weighted("Prox") / 30
    scoring = 74 - get("Scoring Average", 72.0)
    return weighted("GIR") * 0.40 + approach * 0.30 + get("SG Putting") * 0.25 + scoring * 0.05


def _standardize(values: np.ndarray, labels: Sequence[str], config: MetricConfig) -> np.ndarray:
    """Population z-scores per column, oriented so higher is better; missing values become 0."""

    standardized = np.zeros_like(values)
    for idx, label in enumerate(labels):
        column = values[:, idx]
        present = ~np.isnan(column)
        if not present.any():
            continue
        std = float(column[present].std())
        if std == 0:
            continue
        z = (column[present] - float(column[present].mean())) / std
        if config.is_lower_better(label):
            z = -z
        standardized[present, idx] = z
    return standardized


def build_metric_table(
    players: Sequence[FieldPlayer],
    historical_rounds: Iterable[Row],
    approach_rows: Iterable[Row] = (),
    similar_course_ids: Collection[str] = (),
    putting_course_ids: Collection[str] = (),
    runtime: Optional[RankingRuntime] = None,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> PlayerMetricTable:
    config = metric_config or get_metric_config()
    runtime = runtime or RankingRuntime()
    similar = {str(event_id) for event_id in similar_course_ids}
    putting = {str(event_id) for event_id in putting_course_ids}

    rounds_by_player: Dict[str, List[Row]] = defaultdict(list)
    for row in historical_rounds:
        rounds_by_player[row_player_id(row)].append(row)
    approach_by_player = {row_player_id(row): row for row in approach_rows if row_player_id(row)}

    labels = tuple(config.labels)
    matrix = np.full((len(players), len(labels)), np.nan)
    vectors: List[MetricVector] = []
    for row_idx, player in enumerate(players):
        metrics: Dict[str, Optional[float]] = {}
        metrics.update(_average_round_metrics(rounds_by_player.get(player.player_id, ()), similar, putting, runtime))
        metrics.update(_approach_metrics(approach_by_player.get(player.player_id)))
        metrics["Birdie Chances Created"] = birdie_chances_created(metrics, runtime.course_setup_weights)
        vector = MetricVector.from_mapping(labels, metrics)
        vectors.append(vector)
        for col_idx, (_, value) in enumerate(vector):
            if value is not None:
                matrix[row_idx, col_idx] = value

    logger.debug("Built metric table for %d players from %d players with rounds", len(players), len(rounds_by_player))
    return PlayerMetricTable(
        player_ids=tuple(player.player_id for player in players),
        names=tuple(player.name for player in players),
        labels=labels,
        values=matrix,
        standardized=_standardize(matrix, labels, config),
        vectors=tuple(vectors),
    )


def _coefficients(
    table: PlayerMetricTable,
    group_weights: Mapping[str, float],
    metric_weights: Mapping[str, float],
    config: MetricConfig,
) -> np.ndarray:
    coefficients = np.zeros(len(table.labels))
    positions = table.label_index()
    total_group = sum(float(group_weights.get(group.name) or 0.0) for group in config.groups)
    if total_group == 0:
        return coefficients
    for group in config.groups:
        group_weight = float(group_weights.get(group.name) or 0.0) / total_group
        if group_weight == 0:
            continue
        weights = [float(metric_weights.get(group.metric_key(spec), spec.default_weight)) for spec in group.metrics]
        total_abs = sum(abs(weight) for weight in weights)
        if total_abs == 0:
            continue
        for spec, weight in zip(group.metrics, weights):
            position = positions.get(spec.label)
            if position is not None:
                coefficients[position] += group_weight * weight / total_abs
    return coefficients


def score_players(
    table: PlayerMetricTable,
    group_weights: Mapping[str, float],
    metric_weights: Mapping[str, float],
    *,
    course_setup_weights: Optional[Mapping[str, float]] = None,
    metric_config: Optional[MetricConfig] = None,
) -> List[RankedPlayer]:
    """Rank the table by composite score, best first; ties go to the lower player id."""

    config = metric_config or get_metric_config()
    adjusted = apply_shot_distribution(metric_weights, course_setup_weights)
    scores = table.standardized @ _coefficients(table, group_weights, adjusted, config)
    order = sorted(range(len(table)), key=lambda idx: (-float(scores[idx]), table.player_ids[idx]))
    return [
        RankedPlayer(
            player_id=table.player_ids[idx],
            name=table.names[idx],
            rank=rank,
            score=float(scores[idx]),
            metrics=table.vectors[idx],
        )
        for rank, idx in enumerate(order, start=1)
    ]


def rank_players(
    players: Sequence[FieldPlayer],
    template: WeightTemplate,
    historical_rounds: Iterable[Row],
    approach_rows: Iterable[Row] = (),
    similar_course_ids: Collection[str] = (),
    putting_course_ids: Collection[str] = (),
    runtime: Optional[RankingRuntime] = None,
    *,
    metric_config: Optional[MetricConfig] = None,
) -> List[RankedPlayer]:
    runtime = runtime or RankingRuntime()
    table = build_metric_table(
        players,
        historical_rounds,
        approach_rows,
        similar_course_ids,
        putting_course_ids,
        runtime,
        metric_config=metric_config,
    )
    return score_players(
        table,
        template.group_weights,
        template.metric_weights,
        course_setup_weights=runtime.course_setup_weights,
        metric_config=metric_config,
    )

"""Player ranking used to score weight templates."""

from .engine import (
    APPROACH_BUCKETS,
    PlayerMetricTable,
    RankingRuntime,
    apply_shot_distribution,
    birdie_chances_created,
    build_metric_table,
    rank_players,
    score_players,
)

__all__ = [
    "APPROACH_BUCKETS",
    "PlayerMetricTable",
    "RankingRuntime",
    "apply_shot_distribution",
    "birdie_chances_created",
    "build_metric_table",
    "rank_players",
    "score_players",
]

"""Statistics kernel used by the signal builder and the search engine."""

from .kernel import (
    DEFAULT_L2_CANDIDATES,
    InsufficientDataError,
    Sample,
    average_ranks,
    cross_validate_by_group,
    evaluate_logistic,
    ndcg_weighted_top_n,
    pearson,
    predict_probability,
    rmse,
    sigmoid,
    spearman,
    train_logistic,
)

__all__ = [
    "DEFAULT_L2_CANDIDATES",
    "InsufficientDataError",
    "Sample",
    "average_ranks",
    "cross_validate_by_group",
    "evaluate_logistic",
    "ndcg_weighted_top_n",
    "pearson",
    "predict_probability",
    "rmse",
    "sigmoid",
    "spearman",
    "train_logistic",
]

"""Numeric primitives: correlations, error metrics, logistic regression and top-N scoring."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from golfweights.models import CvSummary, LogisticEvaluation, LogisticModel


logger = logging.getLogger(__name__)

MIN_TRAINING_SAMPLES = 10
MIN_CV_GROUPS = 3
MIN_CV_SAMPLES = 30
MIN_FOLD_TRAINING_SAMPLES = 20
MIN_FOLD_SAMPLES = 10
DEFAULT_L2_CANDIDATES: Tuple[float, ...] = (0.0, 0.001, 0.005, 0.01, 0.05, 0.1)

_LOG_EPSILON = 1e-9


class InsufficientDataError(ValueError):
    def __init__(self, message: str, *, samples: int = 0, groups: int = 0):
        super().__init__(message)
        self.message = message
        self.samples = samples
        self.groups = groups


@dataclass(frozen=True)
class Sample:
    features: Tuple[float, ...]
    label: int


def _as_pair(xs: Sequence[float], ys: Sequence[float]) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    if len(xs) == 0 or len(xs) != len(ys):
        return None
    return np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Sample correlation; 0 for empty, mismatched or zero-variance inputs."""

    pair = _as_pair(xs, ys)
    if pair is None:
        return 0.0
    x, y = pair
    dx = x - x.mean()
    dy = y - y.mean()
    denom = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if denom == 0 or not math.isfinite(denom):
        return 0.0
    value = float(np.dot(dx, dy)) / denom
    return max(-1.0, min(1.0, value))


def average_ranks(values: Sequence[float]) -> list[float]:
    """1-indexed ranks where tied values share the mean of their positions."""

    order = sorted(range(len(values)), key=lambda idx: values[idx])
    ranks = [0.0] * len(values)
    start = 0
    while start < len(order):
        end = start
        while end + 1 < len(order) and values[order[end + 1]] == values[order[start]]:
            end += 1
        shared = (start + end) / 2.0 + 1.0
        for position in range(start, end + 1):
            ranks[order[position]] = shared
        start = end + 1
    return ranks


def spearman(xs: Sequence[float], ys: Sequence[float]) -> float:
    if len(xs) == 0 or len(xs) != len(ys):
        return 0.0
    return pearson(average_ranks(xs), average_ranks(ys))


def rmse(predicted: Sequence[float], actual: Sequence[float]) -> float:
    pair = _as_pair(predicted, actual)
    if pair is None:
        return 0.0
    p, a = pair
    return float(np.sqrt(np.mean((p - a) ** 2)))


def sigmoid(z: float) -> float:
    if z < -50:
        return 0.0
    if z > 50:
        return 1.0
    return 1.0 / (1.0 + math.exp(-z))


def _sigmoid_array(z: np.ndarray) -> np.ndarray:
    clipped = np.clip(z, -50.0, 50.0)
    out = 1.0 / (1.0 + np.exp(-clipped))
    out = np.where(z < -50.0, 0.0, out)
    return np.where(z > 50.0, 1.0, out)


def _require_samples(samples: Sequence[Sample], minimum: int) -> None:
    if len(samples) < minimum:
        raise InsufficientDataError("Not enough samples", samples=len(samples))


def _fit(samples: Sequence[Sample], iterations: int, learning_rate: float, l2: float) -> LogisticModel:
    _require_samples(samples, MIN_TRAINING_SAMPLES)
    features = np.asarray([sample.features for sample in samples], dtype=float)
    labels = np.asarray([sample.label for sample in samples], dtype=float)
    n = features.shape[0]

    means = features.mean(axis=0)
    stds = features.std(axis=0)
    stds = np.where(stds == 0, 1.0, stds)
    normalized = (features - means) / stds

    weights = np.zeros(features.shape[1])
    bias = 0.0
    for _ in range(iterations):
        predictions = _sigmoid_array(normalized @ weights + bias)
        error = predictions - labels
        gradient = normalized.T @ error / n + l2 * weights
        weights = weights - learning_rate * gradient
        bias -= learning_rate * float(error.sum() / n)

    return LogisticModel(
        success=True,
        samples=n,
        weights=tuple(float(w) for w in weights),
        bias=bias,
        means=tuple(float(m) for m in means),
        stds=tuple(float(s) for s in stds),
        l2=l2,
    )


def train_logistic(
    samples: Sequence[Sample],
    *,
    iterations: int = 300,
    learning_rate: float = 0.12,
    l2: float = 0.01,
) -> LogisticModel:
    """Batch gradient descent on L2-regularized cross-entropy over standardized features."""

    try:
        return _fit(samples, iterations, learning_rate, l2)
    except InsufficientDataError as exc:
        logger.debug("Skipping logistic training: %s (%d samples)", exc.message, exc.samples)
        return LogisticModel(success=False, samples=exc.samples, message=exc.message)


def predict_probability(model: LogisticModel, features: Sequence[float]) -> float:
    linear = model.bias
    for value, weight, mean, std in zip(features, model.weights, model.means, model.stds):
        linear += weight * (value - mean) / std
    return sigmoid(linear)


def evaluate_logistic(model: LogisticModel, samples: Sequence[Sample]) -> LogisticEvaluation:
    if not model.success or not samples:
        return LogisticEvaluation(accuracy=0.0, log_loss=0.0, samples=len(samples))

    correct = 0
    log_loss = 0.0
    for sample in samples:
        prediction = predict_probability(model, sample.features)
        predicted_class = 1 if prediction >= 0.5 else 0
        if predicted_class == sample.label:
            correct += 1
        log_loss += -sample.label * math.log(prediction + _LOG_EPSILON) - (1 - sample.label) * math.log(
            1 - prediction + _LOG_EPSILON
        )
    return LogisticEvaluation(
        accuracy=correct / len(samples),
        log_loss=log_loss / len(samples),
        samples=len(samples),
    )


def _check_cv_inputs(groups: Mapping[str, Sequence[Sample]]) -> list[Sample]:
    if len(groups) < MIN_CV_GROUPS:
        raise InsufficientDataError("Not enough events for CV", groups=len(groups))
    pooled = [sample for samples in groups.values() for sample in samples]
    if len(pooled) < MIN_CV_SAMPLES:
        raise InsufficientDataError("Not enough samples for CV", samples=len(pooled), groups=len(groups))
    return pooled


def cross_validate_by_group(
    groups: Mapping[str, Sequence[Sample]],
    l2_candidates: Sequence[float] = DEFAULT_L2_CANDIDATES,
) -> CvSummary:
    """Leave-one-group-out CV over L2 candidates; the lowest mean log-loss wins.

    Groups are tournament events so rounds of one event never straddle a fold.
    """

    try:
        pooled = _check_cv_inputs(groups)
    except InsufficientDataError as exc:
        logger.info("Cross-validation skipped: %s", exc.message)
        return CvSummary(
            success=False,
            event_count=exc.groups,
            total_samples=exc.samples,
            message=exc.message,
        )

    keys = list(groups.keys())
    scored: list[tuple[float, float, float, int]] = []
    for l2 in l2_candidates or DEFAULT_L2_CANDIDATES:
        total_log_loss = 0.0
        total_accuracy = 0.0
        folds_used = 0
        for held_out in keys:
            fold = groups[held_out]
            training = [sample for key in keys if key != held_out for sample in groups[key]]
            if len(training) < MIN_FOLD_TRAINING_SAMPLES or len(fold) < MIN_FOLD_SAMPLES:
                continue
            model = train_logistic(training, l2=l2)
            if not model.success:
                continue
            evaluation = evaluate_logistic(model, fold)
            total_log_loss += evaluation.log_loss
            total_accuracy += evaluation.accuracy
            folds_used += 1
        if folds_used:
            scored.append((total_log_loss / folds_used, l2, total_accuracy / folds_used, folds_used))

    if not scored:
        return CvSummary(
            success=False,
            event_count=len(keys),
            total_samples=len(pooled),
            message="No valid CV folds",
        )

    avg_log_loss, best_l2, avg_accuracy, folds_used = min(scored, key=lambda item: item[0])
    final_model = train_logistic(pooled, l2=best_l2)
    logger.info(
        "Cross-validation picked l2=%s (log-loss %.4f, accuracy %.3f, %d folds)",
        best_l2,
        avg_log_loss,
        avg_accuracy,
        folds_used,
    )
    return CvSummary(
        success=True,
        event_count=len(keys),
        total_samples=len(pooled),
        best_l2=best_l2,
        avg_log_loss=avg_log_loss,
        avg_accuracy=avg_accuracy,
        folds_used=folds_used,
        final_model=final_model,
    )


def ndcg_weighted_top_n(
    predicted_order: Sequence[str],
    actual_positions: Mapping[str, int],
    n: int,
) -> float:
    """Discounted gain of the first ``n`` predicted players against actual finishes, 0..100."""

    def gain(position: Optional[int]) -> float:
        if position is None or position > n:
            return 0.0
        return float(max(0, n - position + 1))

    ranked = [player_id for player_id in predicted_order if player_id in actual_positions][:n]
    dcg = sum(gain(actual_positions[player_id]) / math.log2(idx + 2) for idx, player_id in enumerate(ranked))
    ideal = sorted(position for position in actual_positions.values() if position <= n)[:n]
    idcg = sum(gain(position) / math.log2(idx + 2) for idx, position in enumerate(ideal))
    if idcg == 0:
        return 0.0
    return 100.0 * dcg / idcg

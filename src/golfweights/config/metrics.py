"""Canonical metric hierarchy shared by the ranking engine and the optimizer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class MetricSpec:
    name: str
    label: str
    default_weight: float


@dataclass(frozen=True)
class MetricGroup:
    name: str
    metrics: Tuple[MetricSpec, ...]
    default_weight: float

    def metric_key(self, metric: MetricSpec | str) -> str:
        name = metric if isinstance(metric, str) else metric.name
        return f"{self.name}::{name}"


@dataclass(frozen=True)
class MetricDirection:
    label: str
    higher_is_better: bool

    def orient(self, value: float) -> float:
        """Flip the sign of lower-is-better values so that positive always means good."""

        return value if self.higher_is_better else -value


@dataclass(frozen=True)
class HistoricalMetric:
    column: str
    label: str
    lower_is_better: bool = False
    percent: bool = False


@dataclass(frozen=True)
class MetricConfig:
    groups: Tuple[MetricGroup, ...]
    labels: Tuple[str, ...]
    directions: Mapping[str, MetricDirection]
    approach_groups: frozenset[str]

    def group(self, name: str) -> MetricGroup:
        for group in self.groups:
            if group.name == name:
                return group
        raise KeyError(f"No metric group named {name!r}")

    def group_names(self) -> list[str]:
        return [group.name for group in self.groups]

    def metric_keys(self) -> list[str]:
        return [group.metric_key(metric) for group in self.groups for metric in group.metrics]

    def direction(self, label: str) -> MetricDirection:
        normalized = normalize_metric_label(label)
        return self.directions.get(normalized, MetricDirection(normalized, True))

    def is_lower_better(self, label: str) -> bool:
        return not self.direction(label).higher_is_better

    def label_groups(self) -> Dict[str, str]:
        """Map each normalized label to the first group that declares it."""

        lookup: Dict[str, str] = {}
        for group in self.groups:
            for metric in group.metrics:
                lookup.setdefault(metric.label, group.name)
        return lookup


_PREFIX_PATTERN = re.compile(r"^(scoring|course management):\s*", re.IGNORECASE)

_LABEL_ALIASES = {
    "Poor Shot Avoidance": "Poor Shots",
}


def normalize_metric_label(label: str) -> str:
    """Strip category prefixes and resolve aliases so labels compare across sources."""

    stripped = _PREFIX_PATTERN.sub("", str(label or "")).strip()
    return _LABEL_ALIASES.get(stripped, stripped)


GENERATED_METRIC_LABELS: Tuple[str, ...] = (
    "SG Total",
    "Driving Distance",
    "Driving Accuracy",
    "SG T2G",
    "SG Approach",
    "SG Around Green",
    "SG OTT",
    "SG Putting",
    "Greens in Regulation",
    "Scrambling",
    "Great Shots",
    "Poor Shots",
    "Scoring Average",
    "Birdies or Better",
    "Birdie Chances Created",
    "Fairway Proximity",
    "Rough Proximity",
    "Approach <100 GIR",
    "Approach <100 SG",
    "Approach <100 Prox",
    "Approach <150 FW GIR",
    "Approach <150 FW SG",
    "Approach <150 FW Prox",
    "Approach <150 Rough GIR",
    "Approach <150 Rough SG",
    "Approach <150 Rough Prox",
    "Approach >150 Rough GIR",
    "Approach >150 Rough SG",
    "Approach >150 Rough Prox",
    "Approach <200 FW GIR",
    "Approach <200 FW SG",
    "Approach <200 FW Prox",
    "Approach >200 FW GIR",
    "Approach >200 FW SG",
    "Approach >200 FW Prox",
)

LOWER_IS_BETTER: frozenset[str] = frozenset(
    {
        "Poor Shots",
        "Scoring Average",
        "Fairway Proximity",
        "Rough Proximity",
        "Approach <100 Prox",
        "Approach <150 FW Prox",
        "Approach <150 Rough Prox",
        "Approach >150 Rough Prox",
        "Approach <200 FW Prox",
        "Approach >200 FW Prox",
    }
)

# Labels trusted across every year of an event when blending top-20 signal.
HISTORICAL_CORE_LABELS: Tuple[str, ...] = (
    "SG Total",
    "Scoring Average",
    "Birdies or Better",
    "Driving Distance",
    "Driving Accuracy",
    "SG T2G",
    "SG Approach",
    "SG Around Green",
    "SG OTT",
    "SG Putting",
    "Poor Shots",
)

HISTORICAL_METRICS: Tuple[HistoricalMetric, ...] = (
    HistoricalMetric("score", "Scoring Average", lower_is_better=True),
    HistoricalMetric("eagles_or_better", "Eagles or Better"),
    HistoricalMetric("birdies", "Birdies"),
    HistoricalMetric("birdies_or_better", "Birdies or Better"),
    HistoricalMetric("sg_total", "SG Total"),
    HistoricalMetric("driving_dist", "Driving Distance"),
    HistoricalMetric("driving_acc", "Driving Accuracy", percent=True),
    HistoricalMetric("sg_t2g", "SG T2G"),
    HistoricalMetric("sg_app", "SG Approach"),
    HistoricalMetric("sg_arg", "SG Around Green"),
    HistoricalMetric("sg_ott", "SG OTT"),
    HistoricalMetric("sg_putt", "SG Putting"),
    HistoricalMetric("gir", "Greens in Regulation", percent=True),
    HistoricalMetric("scrambling", "Scrambling", percent=True),
    HistoricalMetric("great_shots", "Great Shots"),
    HistoricalMetric("poor_shots", "Poor Shots", lower_is_better=True),
    HistoricalMetric("prox_fw", "Fairway Proximity", lower_is_better=True),
    HistoricalMetric("prox_rgh", "Rough Proximity", lower_is_better=True),
)


def _group(name: str, weight: float, metrics: Iterable[Tuple[str, float]]) -> MetricGroup:
    specs = tuple(
        MetricSpec(name=metric_name, label=normalize_metric_label(metric_name), default_weight=metric_weight)
        for metric_name, metric_weight in metrics
    )
    return MetricGroup(name=name, metrics=specs, default_weight=weight)


_GROUPS: Tuple[MetricGroup, ...] = (
    _group(
        "Driving Performance",
        0.090,
        [("Driving Distance", 0.061), ("Driving Accuracy", 0.410), ("SG OTT", 0.529)],
    ),
    _group(
        "Approach - Short (<100)",
        0.148,
        [("Approach <100 GIR", 0.12), ("Approach <100 SG", 0.34), ("Approach <100 Prox", 0.54)],
    ),
    _group(
        "Approach - Mid (100-150)",
        0.190,
        [
            ("Approach <150 FW GIR", 0.10),
            ("Approach <150 FW SG", 0.30),
            ("Approach <150 FW Prox", 0.60),
            ("Approach <150 Rough GIR", 0.10),
            ("Approach <150 Rough SG", 0.30),
            ("Approach <150 Rough Prox", 0.60),
        ],
    ),
    _group(
        "Approach - Long (150-200)",
        0.160,
        [
            ("Approach <200 FW GIR", 0.09),
            ("Approach <200 FW SG", 0.28),
            ("Approach <200 FW Prox", 0.63),
            ("Approach >150 Rough GIR", 0.09),
            ("Approach >150 Rough SG", 0.28),
            ("Approach >150 Rough Prox", 0.63),
        ],
    ),
    _group(
        "Approach - Very Long (>200)",
        0.035,
        [("Approach >200 FW GIR", 0.09), ("Approach >200 FW SG", 0.24), ("Approach >200 FW Prox", 0.67)],
    ),
    _group("Putting", 0.115, [("SG Putting", 1.0)]),
    _group("Around the Green", 0.100, [("SG Around Green", 1.0)]),
    _group(
        "Scoring",
        0.105,
        [
            ("SG T2G", 0.19),
            ("Scoring Average", 0.11),
            ("Birdie Chances Created", 0.10),
            ("Scoring: Approach <100 SG", 0.15),
            ("Scoring: Approach <150 FW SG", 0.15),
            ("Scoring: Approach <150 Rough SG", 0.15),
            ("Scoring: Approach <200 FW SG", 0.07),
            ("Scoring: Approach >200 FW SG", 0.03),
            ("Scoring: Approach >150 Rough SG", 0.05),
        ],
    ),
    _group(
        "Course Management",
        0.057,
        [
            ("Scrambling", 0.12),
            ("Great Shots", 0.08),
            ("Poor Shot Avoidance", 0.08),
            ("Course Management: Approach <100 Prox", 0.12),
            ("Course Management: Approach <150 FW Prox", 0.12),
            ("Course Management: Approach <150 Rough Prox", 0.16),
            ("Course Management: Approach >150 Rough Prox", 0.18),
            ("Course Management: Approach <200 FW Prox", 0.11),
            ("Course Management: Approach >200 FW Prox", 0.03),
        ],
    ),
)

APPROACH_GROUPS: frozenset[str] = frozenset(
    {
        "Approach - Short (<100)",
        "Approach - Mid (100-150)",
        "Approach - Long (150-200)",
        "Approach - Very Long (>200)",
    }
)

_METRIC_CONFIG = MetricConfig(
    groups=_GROUPS,
    labels=GENERATED_METRIC_LABELS,
    directions={
        label: MetricDirection(label=label, higher_is_better=label not in LOWER_IS_BETTER)
        for label in GENERATED_METRIC_LABELS
    },
    approach_groups=APPROACH_GROUPS,
)


def get_metric_config() -> MetricConfig:
    """Return the shared metric configuration."""

    return _METRIC_CONFIG


def get_label_group(label: str) -> str:
    """Return the primary group for a metric label, raising KeyError if unknown."""

    lookup = _METRIC_CONFIG.label_groups()
    normalized = normalize_metric_label(label)
    if normalized not in lookup:
        raise KeyError(f"No metric group declares label {label!r}")
    return lookup[normalized]

"""Readers for the validation-report CSVs and the weights derived from them.

The validation runner writes three kinds of files that the optimizer consumes:

* per course type correlation summaries (``03_<type>_summary.csv``) with a
  ``Metric`` column and an ``Avg Correlation`` column;
* a weight-templates file split into ``POWER COURSES`` / ``TECHNICAL COURSES``
  / ``BALANCED COURSES`` sections, each with its own header row;
* a delta-trends file carrying a drift ``Status`` and an optional ``Bias Z``
  per metric.

Every reader returns ``None`` (or empty sections) when its file is missing so
the pipeline can run with internally computed signals only.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from golfweights.config import COURSE_TYPES, MetricConfig, normalize_metric_label
from golfweights.ingest.discovery import find_file_by_keywords
from golfweights.models import WeightTemplate, normalize_weights


logger = logging.getLogger(__name__)

VALIDATION_RANGE_PCT = 0.20

_SECTION_MARKERS = {
    "POWER COURSES": "POWER",
    "TECHNICAL COURSES": "TECHNICAL",
    "BALANCED COURSES": "BALANCED",
}


@dataclass(frozen=True)
class TypeSummaryEntry:
    metric: str
    avg_correlation: float


@dataclass(frozen=True)
class ValidationWeightEntry:
    metric: str
    config_weight: Optional[float] = None
    template_weight: Optional[float] = None
    recommended_weight: Optional[float] = None

    @property
    def preferred_weight(self) -> Optional[float]:
        if self.recommended_weight is not None:
            return self.recommended_weight
        return self.template_weight


@dataclass(frozen=True)
class DeltaTrendEntry:
    metric: str
    bias_z: Optional[float] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class MetricConstraint:
    minimum: float
    maximum: float

    @property
    def center(self) -> float:
        return (self.minimum + self.maximum) / 2

    def clamp(self, value: float) -> float:
        return min(self.maximum, max(self.minimum, value))

    def to_dict(self) -> dict:
        return {"min": self.minimum, "max": self.maximum}


@dataclass
class ValidationData:
    course_type: Optional[str] = None
    type_summaries: Dict[str, List[TypeSummaryEntry]] = field(default_factory=dict)
    weight_templates: Dict[str, List[ValidationWeightEntry]] = field(default_factory=dict)
    weight_templates_path: Optional[Path] = None
    delta_trends: List[DeltaTrendEntry] = field(default_factory=list)
    delta_trends_path: Optional[Path] = None

    def summary_for(self, course_type: Optional[str]) -> List[TypeSummaryEntry]:
        return list(self.type_summaries.get(course_type or "", []))

    def weights_for(self, course_type: Optional[str]) -> List[ValidationWeightEntry]:
        return list(self.weight_templates.get(course_type or "", []))

    def source_paths(self) -> Dict[str, Optional[Path]]:
        return {
            "validationWeightTemplates": self.weight_templates_path,
            "validationDeltaTrends": self.delta_trends_path,
        }


def _read_cells(path: Path) -> List[List[str]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        return [[cell.strip() for cell in row] for row in csv.reader(handle)]


def _cell(row: Sequence[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return row[index].strip()


def _to_float(text: str) -> Optional[float]:
    cleaned = text.replace("%", "").strip()
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return None if value != value else value


def _find_column(cells: Sequence[str], predicate) -> int:
    for index, cell in enumerate(cells):
        if predicate(cell.lower()):
            return index
    return -1


def parse_type_summary(path: Optional[Path]) -> Optional[List[TypeSummaryEntry]]:
    """Rows below the first header that has both ``Metric`` and ``Avg Correlation``."""

    if path is None or not path.exists():
        return None
    rows = _read_cells(path)
    for header_index, cells in enumerate(rows):
        metric_idx = _find_column(cells, lambda cell: cell == "metric")
        corr_idx = _find_column(cells, lambda cell: "avg correlation" in cell)
        if metric_idx != -1 and corr_idx != -1:
            break
    else:
        return None

    entries: List[TypeSummaryEntry] = []
    for row in rows[header_index + 1 :]:
        metric = _cell(row, metric_idx)
        if not metric:
            continue
        value = _to_float(_cell(row, corr_idx))
        if value is None:
            continue
        entries.append(TypeSummaryEntry(metric=metric, avg_correlation=value))
    return entries or None


def parse_weight_templates(path: Optional[Path]) -> Optional[Dict[str, List[ValidationWeightEntry]]]:
    if path is None or not path.exists():
        return None
    results: Dict[str, List[ValidationWeightEntry]] = {course_type: [] for course_type in COURSE_TYPES}
    current_type: Optional[str] = None
    columns: Optional[Dict[str, int]] = None

    for row in _read_cells(path):
        first = _cell(row, 0)
        section = next((value for marker, value in _SECTION_MARKERS.items() if marker in first.upper()), None)
        if section is not None:
            current_type = section
            columns = None
            continue
        if current_type is None:
            continue
        if first.lower() == "metric":
            columns = {
                "metric": _find_column(row, lambda cell: cell == "metric"),
                "config": _find_column(row, lambda cell: "config weight" in cell),
                "template": _find_column(row, lambda cell: "template weight" in cell),
                "recommended": _find_column(row, lambda cell: "recommended" in cell),
            }
            continue
        if columns is None or columns["metric"] == -1:
            continue
        metric = _cell(row, columns["metric"])
        if not metric:
            continue
        results[current_type].append(
            ValidationWeightEntry(
                metric=metric,
                config_weight=_to_float(_cell(row, columns["config"])),
                template_weight=_to_float(_cell(row, columns["template"])),
                recommended_weight=_to_float(_cell(row, columns["recommended"])),
            )
        )
    return results


def parse_delta_trends(path: Optional[Path]) -> Optional[List[DeltaTrendEntry]]:
    if path is None or not path.exists():
        return None
    rows = _read_cells(path)
    for header_index, cells in enumerate(rows):
        metric_idx = _find_column(cells, lambda cell: cell == "metric")
        if metric_idx != -1:
            bias_idx = _find_column(cells, lambda cell: "bias z" in cell)
            status_idx = _find_column(cells, lambda cell: cell == "status")
            break
    else:
        return None

    entries: List[DeltaTrendEntry] = []
    for row in rows[header_index + 1 :]:
        metric = _cell(row, metric_idx)
        if not metric:
            continue
        status = _cell(row, status_idx).upper() if status_idx != -1 else None
        entries.append(
            DeltaTrendEntry(
                metric=metric,
                bias_z=_to_float(_cell(row, bias_idx)) if bias_idx != -1 else None,
                status=status or None,
            )
        )
    return entries or None


def resolve_metric_name(metric: str, config: MetricConfig) -> Optional[str]:
    """Map a validation-report metric name onto the configured metric name.

    Exact names win; otherwise the prefix-stripped label must match exactly
    one configured metric.
    """

    if not metric:
        return None
    names = {spec.name for group in config.groups for spec in group.metrics}
    if metric in names:
        return metric
    label = normalize_metric_label(metric)
    if label in names:
        return label
    matches = sorted({name for name in names if normalize_metric_label(name) == label})
    if len(matches) == 1:
        return matches[0]
    return None


def determine_course_type(type_summaries: Mapping[str, Sequence[TypeSummaryEntry]]) -> Optional[str]:
    """Course type whose summary has the highest mean absolute correlation."""

    best_type: Optional[str] = None
    best_score = float("-inf")
    for course_type, entries in type_summaries.items():
        if not entries:
            continue
        score = sum(abs(entry.avg_correlation) for entry in entries) / len(entries)
        if score > best_score:
            best_type, best_score = course_type, score
    return best_type


def build_validation_alignment_map(
    config: MetricConfig, summary: Sequence[TypeSummaryEntry]
) -> Dict[str, float]:
    alignment: Dict[str, float] = {}
    for entry in summary:
        resolved = resolve_metric_name(entry.metric, config)
        if resolved is None:
            continue
        alignment[normalize_metric_label(resolved)] = entry.avg_correlation
    return alignment


def build_delta_trend_map(config: MetricConfig, trends: Sequence[DeltaTrendEntry]) -> Dict[str, float]:
    """``1 - biasZ`` per metric; metrics without a bias score 0."""

    scores: Dict[str, float] = {}
    for entry in trends:
        resolved = resolve_metric_name(entry.metric, config)
        if resolved is None:
            continue
        scores[normalize_metric_label(resolved)] = 1 - entry.bias_z if entry.bias_z is not None else 0.0
    return scores


def _preferred_weights(config: MetricConfig, entries: Sequence[ValidationWeightEntry]) -> Dict[str, float]:
    weights: Dict[str, float] = {}
    for entry in entries:
        resolved = resolve_metric_name(entry.metric, config)
        weight = entry.preferred_weight
        if resolved is None or weight is None:
            continue
        weights[resolved] = weight
    return weights


def build_validation_metric_weights(
    config: MetricConfig,
    entries: Sequence[ValidationWeightEntry],
    fallback: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """Recommended weights normalized per group; groups without any entry keep ``fallback``."""

    metric_weights = dict(fallback or {})
    validated = _preferred_weights(config, entries)
    for group in config.groups:
        values = [validated.get(spec.name) for spec in group.metrics]
        if all(value is None for value in values):
            continue
        filled = [value if value is not None else 0.0 for value in values]
        total = sum(filled)
        if total <= 0:
            continue
        for spec, value in zip(group.metrics, filled):
            metric_weights[group.metric_key(spec)] = value / total
    return metric_weights


def build_validation_group_weights(
    config: MetricConfig,
    summary: Sequence[TypeSummaryEntry],
    fallback: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """Sum of absolute summary correlations per group, normalized."""

    group_weights = dict(fallback or {})
    owners = {spec.name: group.name for group in config.groups for spec in group.metrics}
    totals: Dict[str, float] = {}
    for entry in summary:
        resolved = resolve_metric_name(entry.metric, config)
        group_name = owners.get(resolved) if resolved else None
        if group_name is None:
            continue
        totals[group_name] = totals.get(group_name, 0.0) + abs(entry.avg_correlation)

    grand_total = sum(totals.values())
    if grand_total <= 0:
        return group_weights
    for group_name, value in totals.items():
        group_weights[group_name] = value / grand_total
    return normalize_weights(group_weights)


def build_validation_template(
    course_type: Optional[str],
    config: MetricConfig,
    data: ValidationData,
    templates: Mapping[str, WeightTemplate],
    *,
    event_id: Optional[str] = None,
    source_label: Optional[str] = None,
) -> Optional[WeightTemplate]:
    """Template for a course type rebuilt from the validation outputs, or ``None``."""

    if not course_type:
        return None
    weights = data.weights_for(course_type)
    summary = data.summary_for(course_type)
    if not weights and not summary:
        return None

    fallback = templates.get(course_type) or (templates.get(str(event_id)) if event_id else None)
    if fallback is None and templates:
        fallback = next(iter(templates.values()))

    suffix = f" ({source_label})" if source_label else ""
    return WeightTemplate(
        name=course_type,
        description=f"Validation CSV {course_type} template{suffix}",
        group_weights=build_validation_group_weights(
            config, summary, fallback.group_weights if fallback else None
        ),
        metric_weights=build_validation_metric_weights(
            config, weights, fallback.metric_weights if fallback else None
        ),
    )


def build_metric_constraints(
    config: MetricConfig,
    entries: Sequence[ValidationWeightEntry],
    range_pct: float = VALIDATION_RANGE_PCT,
) -> Dict[str, MetricConstraint]:
    """``[w*(1-range), w*(1+range)]`` around each validated metric weight, floored at 0."""

    validated = _preferred_weights(config, entries)
    constraints: Dict[str, MetricConstraint] = {}
    for group in config.groups:
        for spec in group.metrics:
            weight = validated.get(spec.name)
            if weight is None:
                continue
            constraints[group.metric_key(spec)] = MetricConstraint(
                minimum=max(0.0, weight * (1 - range_pct)),
                maximum=weight * (1 + range_pct),
            )
    return constraints


def drift_status_map(config: MetricConfig, trends: Sequence[DeltaTrendEntry]) -> Dict[str, str]:
    """Configured metric name to upper-case drift status."""

    statuses: Dict[str, str] = {}
    for entry in trends:
        resolved = resolve_metric_name(entry.metric, config)
        if resolved is None:
            continue
        statuses[resolved] = (entry.status or "").upper()
    return statuses


def load_validation_outputs(dirs: Sequence[Path]) -> ValidationData:
    """Discover and parse every validation output found in ``dirs``."""

    summaries = {
        course_type: parse_type_summary(find_file_by_keywords(dirs, ["03", course_type.lower(), "summary"])) or []
        for course_type in COURSE_TYPES
    }
    templates_path = (
        find_file_by_keywords(dirs, ["weight", "templates"])
        or find_file_by_keywords(dirs, ["weight", "template"])
        or find_file_by_keywords(dirs, ["weight_templates"])
    )
    trends_path = (
        find_file_by_keywords(dirs, ["05", "delta", "trends"])
        or find_file_by_keywords(dirs, ["model", "delta", "trends"])
        or find_file_by_keywords(dirs, ["delta", "trends"])
    )

    course_type = determine_course_type(summaries)
    if course_type:
        logger.info("Validation course type selected from summaries: %s", course_type)
    else:
        logger.info("Validation course type unavailable (no summary CSVs found)")
    if templates_path is None:
        logger.info("Validation weight templates CSV not found; skipping metric constraints")

    return ValidationData(
        course_type=course_type,
        type_summaries=summaries,
        weight_templates=parse_weight_templates(templates_path)
        or {key: [] for key in COURSE_TYPES},
        weight_templates_path=templates_path,
        delta_trends=parse_delta_trends(trends_path) or [],
        delta_trends_path=trends_path,
    )

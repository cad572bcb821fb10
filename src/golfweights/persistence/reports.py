"""JSON and plain-text run reports, archiving the previous copy before overwrite."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from golfweights.persistence.guard import backup_if_exists


logger = logging.getLogger(__name__)

RULE = "=" * 100
DEFAULT_BASE_NAME = "adaptive_optimizer"


@dataclass(frozen=True)
class ReportPaths:
    json_path: Path
    text_path: Path
    json_backup: Optional[Path] = None
    text_backup: Optional[Path] = None

    def to_dict(self) -> dict:
        return {
            "json": str(self.json_path),
            "text": str(self.text_path),
            "jsonBackup": str(self.json_backup) if self.json_backup else None,
            "textBackup": str(self.text_backup) if self.text_backup else None,
        }


def _fmt(value: Any, digits: int = 4) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return f"{value:.{digits}f}"
    return str(value)


def _pct(value: Any) -> str:
    if value is None:
        return "n/a"
    return f"{value:.1f}%"


def _correlation_lines(entries: Iterable[Mapping[str, Any]], empty: str) -> List[str]:
    lines = []
    for idx, entry in enumerate(entries, start=1):
        lines.append(
            f"  {idx}. {entry['label']}: Corr={_fmt(entry.get('correlation'))}, Samples={entry.get('samples', 0)}"
        )
    return lines or [f"  {empty}"]


def _weight_lines(entries: Iterable[Mapping[str, Any]], key: str, empty: str) -> List[str]:
    lines = [f"  {idx}. {entry[key]}: weight={_fmt(entry.get('weight'))}" for idx, entry in enumerate(entries, start=1)]
    return lines or [f"  {empty}"]


def _mapping_lines(values: Optional[Mapping[str, Any]]) -> List[str]:
    return [f"  {key}: {_fmt(value)}" for key, value in (values or {}).items()] or ["  (none)"]


def _evaluation_line(label: str, evaluation: Optional[Mapping[str, Any]]) -> str:
    if not evaluation:
        return f"{label}: n/a"
    return (
        f"{label}: Corr={_fmt(evaluation.get('correlation'))}, RMSE={_fmt(evaluation.get('rmse'), 2)}, "
        f"Top-10={_pct(evaluation.get('top10'))}, Top-20={_pct(evaluation.get('top20'))}, "
        f"Top-20 Weighted={_pct(evaluation.get('top20WeightedScore'))}, "
        f"Matched={evaluation.get('matchedPlayers', 0)}"
    )


def _signal_section(report: Mapping[str, Any]) -> List[str]:
    lines = ["STEP 1: HISTORICAL METRIC CORRELATIONS (avg across years):"]
    historical = (report.get("historicalMetricCorrelations") or {}).get("average") or {}
    lines.extend(_correlation_lines(historical.values(), "No historical correlations computed."))
    lines.append("")

    suggested = report.get("suggestedTop20MetricWeights") or {}
    lines.append(f"SUGGESTED METRIC WEIGHTS (TOP-20) - SOURCE: {suggested.get('source', 'none')}")
    metric_lines = [
        f"  {idx}. {entry['label']}: weight={_fmt(entry.get('weight'))}, "
        f"top20Corr={_fmt(entry.get('top20Correlation'))}, logisticWeight={_fmt(entry.get('logisticWeight'))}"
        for idx, entry in enumerate(suggested.get("weights") or [], start=1)
    ]
    lines.extend(metric_lines or ["  No suggested metric weights available."])
    lines.append("")

    groups = report.get("suggestedTop20GroupWeights") or {}
    lines.append(f"SUGGESTED GROUP WEIGHTS (TOP-20) - SOURCE: {groups.get('source', 'none')}")
    lines.extend(_weight_lines(groups.get("weights") or [], "groupName", "No suggested group weights available."))
    lines.append("")

    reliability = report.get("cvReliability")
    conservative = report.get("conservativeSuggestedTop20GroupWeights") or {}
    lines.append(f"CV RELIABILITY (event-based): {_pct((reliability or 0.0) * 100)}")
    lines.append(
        "CONSERVATIVE GROUP WEIGHTS (CV-adjusted, model share "
        f"{_pct((conservative.get('modelShare') or 0.0) * 100)}):"
    )
    lines.extend(_weight_lines(conservative.get("weights") or [], "groupName", "No CV-adjusted group weights available."))
    lines.append("")
    return lines


def _pre_event_lines(report: Mapping[str, Any]) -> List[str]:
    lines = [
        "MODE: Historical + Similar-Course Training (no current-year results)",
        f"Event: {report.get('eventId')} | Tournament: {report.get('tournament') or 'Event'}",
        "",
    ]
    lines.extend(_signal_section(report))
    training = report.get("trainingMetrics") or {}
    lines.append("TRAINING METRICS USED:")
    lines.append(f"  Included: {', '.join(training.get('included') or [])}")
    lines.append(f"  Excluded: {', '.join(training.get('excluded') or [])}")
    lines.append(f"  Derived: {'; '.join(training.get('derived') or [])}")
    lines.append("")
    blend = report.get("blendSettings") or {}
    lines.append(
        f"BLENDED GROUP WEIGHTS (prior {blend.get('priorTemplate', 'n/a')} "
        f"{_fmt(blend.get('priorShare'), 2)} / model {_fmt(blend.get('modelShare'), 2)}):"
    )
    lines.extend(_mapping_lines(report.get("blendedGroupWeights")))
    lines.append("")
    lines.append("ADJUSTED METRIC WEIGHTS (course setup applied):")
    lines.extend(_mapping_lines(report.get("blendedMetricWeightsAdjusted")))
    lines.append("")
    return lines


def _supervised_lines(report: Mapping[str, Any]) -> List[str]:
    lines = _signal_section(report)
    best = report.get("step1_bestTemplate") or {}
    lines.append(f"STEP 1c: BEST BASELINE TEMPLATE: {best.get('name', 'n/a')}")
    lines.append(_evaluation_line("  Current year", best.get("evaluationCurrentYear")))
    lines.append(_evaluation_line("  All years", best.get("evaluation")))
    lines.append("")

    tuned = report.get("tunedTop20GroupWeights")
    lines.append("STEP 2: TOP-20 GROUP WEIGHT TUNING")
    if tuned:
        lines.append(_evaluation_line("  Best", tuned.get("evaluation")))
        lines.extend(_mapping_lines(tuned.get("groupWeights")))
    else:
        lines.append("  Tuning not run.")
    lines.append("")

    optimized = report.get("step3_optimized") or {}
    lines.append("STEP 3: WEIGHT OPTIMIZATION")
    lines.append(_evaluation_line("  Optimized", optimized.get("evaluation")))
    lines.append(f"  Alignment Score: {_fmt(optimized.get('alignmentScore'))}")
    lines.append(f"  Top-20 Composite Score: {_fmt(optimized.get('top20CompositeScore'))}")
    lines.append(f"  Combined Objective Score: {_fmt(optimized.get('combinedObjectiveScore'))}")
    lines.append("  Group weight deltas:")
    for name, delta in (optimized.get("groupWeightDelta") or {}).items():
        lines.append(
            f"    {name}: {_fmt(delta.get('baseline'))} -> {_fmt(delta.get('optimized'))} ({_fmt(delta.get('delta'))})"
        )
    lines.append("")

    lines.append("STEP 4: MULTI-YEAR VALIDATION")
    step4 = report.get("step4_multiYear") or {}
    for label in ("baseline", "optimized"):
        block = step4.get(label) or {}
        for year, evaluation in (block.get("yearly") or {}).items():
            lines.append(_evaluation_line(f"  {label} {year}", evaluation))
        lines.append(_evaluation_line(f"  {label} aggregate", block.get("aggregate")))
    lines.append("")

    recommendation = report.get("recommendation") or {}
    lines.append(f"RECOMMENDATION: {recommendation.get('approach', 'n/a')}")
    lines.append(f"  Baseline template: {recommendation.get('baselineTemplate', 'n/a')}")
    lines.append("")
    return lines


def render_text_report(report: Mapping[str, Any]) -> str:
    """Plain-text mirror of the JSON report."""

    pre_event = report.get("mode") == "pre_event_training"
    title = "PRE-EVENT TRAINING" if pre_event else "FINAL RESULTS"
    dry_run = report.get("dryRun", True)
    lines = [
        RULE,
        f"ADAPTIVE WEIGHT OPTIMIZER - {title}",
        RULE,
        f"DRY RUN: {'ON (templates not modified)' if dry_run else 'OFF (templates written)'}",
        "RUN FINGERPRINT: see JSON output (runFingerprint)",
    ]
    if report.get("optSeed"):
        lines.append(f"OPT_SEED: {report['optSeed']}")
    lines.append("")
    lines.extend(_pre_event_lines(report) if pre_event else _supervised_lines(report))

    writes = report.get("templateWrites") or []
    lines.append("TEMPLATE WRITE SUMMARY:")
    for entry in writes:
        lines.append(f"  {entry['name']}: {entry['action']}")
        lines.extend(f"    - {target}" for target in entry.get("targets") or [])
    if not writes:
        lines.append("  No template updates")
    lines.append("")
    return "\n".join(lines)


def write_reports(
    report: Mapping[str, Any],
    output_dir: Path,
    base_name: str = DEFAULT_BASE_NAME,
) -> ReportPaths:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    archive_dir = output_dir / "archive"
    json_path = output_dir / f"{base_name}_results.json"
    text_path = output_dir / f"{base_name}_results.txt"

    json_backup = backup_if_exists(json_path, archive_dir)
    text_backup = backup_if_exists(text_path, archive_dir)
    if json_backup:
        logger.info("Backed up previous JSON results to %s", json_backup)

    json_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    text_path.write_text(render_text_report(report), encoding="utf-8")
    logger.info("Results saved to %s", json_path)
    return ReportPaths(json_path=json_path, text_path=text_path, json_backup=json_backup, text_backup=text_backup)

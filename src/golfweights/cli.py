"""Command-line interface for running the adaptive weight optimizer on one event."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from golfweights.config_loader import RunSettings
from golfweights.pipeline import MissingInputFileError, PipelineMode, PipelineResult, run_pipeline


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Optimize golf ranking weights for one event")
    parser.add_argument("--event", required=True, help="Event id to optimize")
    parser.add_argument("--season", default=None, help="Season year (default: configuration sheet or latest)")
    parser.add_argument("--tournament", default=None, help="Tournament name used to find input files")
    parser.add_argument("--template", default=None, help="Template name to force as the baseline")
    parser.add_argument("--seed", dest="opt_seed", default=None, help="Seed for a reproducible search")
    parser.add_argument("--tests", type=int, default=None, help="Number of search candidates (default 1500)")
    write_group = parser.add_mutually_exclusive_group()
    write_group.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=None,
        help="Write template candidates to the output directory only (default)",
    )
    write_group.add_argument(
        "--write-templates",
        dest="dry_run",
        action="store_false",
        help="Write changed templates into the template store",
    )
    rounds_group = parser.add_mutually_exclusive_group()
    rounds_group.add_argument(
        "--include-current-event-rounds",
        dest="include_current_event_rounds",
        action="store_true",
        default=None,
        help="Use the current event's rounds in every ranking",
    )
    rounds_group.add_argument(
        "--exclude-current-event-rounds",
        dest="include_current_event_rounds",
        action="store_false",
        help="Leave the current event's rounds out of every ranking",
    )
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding the CSV exports")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for reports and dry-run files")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _print_summary(result: PipelineResult) -> None:
    report = result.report
    print(f"Event {report['eventId']} ({report.get('tournament')}), season {report.get('season')}: {result.mode.value}")
    if result.mode is PipelineMode.SUPERVISED:
        best = report["step1_bestTemplate"]
        optimized = report["step3_optimized"]["evaluation"]
        recommendation = report["recommendation"]
        print(f"Baseline template: {best['templateName']} (corr {best['evaluation']['correlation']:.4f})")
        print(
            "Optimized: corr {:.4f}, top-20 {}".format(
                optimized["correlation"],
                "n/a" if optimized.get("top20") is None else f"{optimized['top20']:.1f}%",
            )
        )
        print(f"Recommendation: {recommendation['approach']} (improvement {recommendation['improvement']:+.4f})")
    else:
        groups = report["suggestedTop20GroupWeights"]["weights"][:3]
        if groups:
            preview = ", ".join(f"{entry['groupName']}={entry['weight']:.3f}" for entry in groups)
            print(f"Top suggested groups: {preview}")
        else:
            print("No suggested group weights (insufficient training signal)")
    for outcome in result.template_writes:
        print(f"Template {outcome.name}: {outcome.action.value}")
    print(f"Wrote {result.paths.json_path}")
    print(f"Wrote {result.paths.text_path}")
    print(f"Run id: {result.run_id}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = RunSettings.from_env(
        args.event,
        season=args.season,
        tournament=args.tournament,
        template=args.template,
        opt_seed=args.opt_seed,
        tests=args.tests,
        dry_run=args.dry_run,
        include_current_event_rounds=args.include_current_event_rounds,
        data_dir=args.data_dir,
        output_dir=args.output_dir,
    )
    try:
        result = run_pipeline(settings)
    except MissingInputFileError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    _print_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())

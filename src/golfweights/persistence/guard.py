"""Materiality check and backup-before-write for template updates."""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from golfweights.models import WeightTemplate


logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-4


class WriteAction(str, Enum):
    SKIPPED = "skipped"
    WRITTEN = "written"
    DRY_RUN = "dryRun"


@dataclass
class WriteOutcome:
    name: str
    action: WriteAction
    targets: List[str] = field(default_factory=list)
    backup: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "action": self.action.value,
            "targets": list(self.targets),
            "backup": self.backup,
        }


def templates_differ(
    a: Optional[WeightTemplate],
    b: Optional[WeightTemplate],
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """True when any group or ``group::metric`` weight is missing on one side or moved past ``tolerance``."""

    if a is None or b is None:
        return True
    for left, right in ((a.group_weights, b.group_weights), (a.metric_weights, b.metric_weights)):
        for key in set(left) | set(right):
            if key not in left or key not in right:
                return True
            if left[key] is None or right[key] is None:
                return True
            if abs(left[key] - right[key]) > tolerance:
                return True
    return False


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def backup_path(path: Path, archive_dir: Path) -> Path:
    archive_dir.mkdir(parents=True, exist_ok=True)
    return archive_dir / f"{path.name}.{_timestamp()}.bak"


def backup_if_exists(path: Path, archive_dir: Optional[Path] = None) -> Optional[Path]:
    """Copy ``path`` into ``archive_dir`` (default ``<parent>/archive``) when it exists."""

    if not path.exists():
        return None
    target = backup_path(path, archive_dir or path.parent / "archive")
    shutil.copyfile(path, target)
    return target


def maybe_persist(
    candidate: WeightTemplate,
    existing: Optional[WeightTemplate],
    store,
    *,
    output_dir: Path,
    dry_run: bool = True,
    tolerance: float = DEFAULT_TOLERANCE,
) -> WriteOutcome:
    """Write ``candidate`` into ``store`` only when it materially differs from ``existing``.

    The previous entry is archived as JSON first. In dry-run mode the would-be
    entry goes to ``output_dir/dryrun_<name>.json`` and the store is untouched.
    """

    if not templates_differ(candidate, existing, tolerance):
        logger.info("Template %s not written (matches existing weights)", candidate.name)
        return WriteOutcome(name=candidate.name, action=WriteAction.SKIPPED)

    output_dir = Path(output_dir)
    backup: Optional[str] = None
    if existing is not None:
        archived = backup_path(Path(f"template_{existing.name}.json"), output_dir / "archive")
        archived.write_text(json.dumps(existing.to_payload(), indent=2), encoding="utf-8")
        backup = str(archived)
        logger.info("Backed up template %s to %s", existing.name, archived)

    if dry_run:
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / f"dryrun_{candidate.name}.json"
        target.write_text(json.dumps(candidate.to_payload(), indent=2), encoding="utf-8")
        logger.info("Dry-run template output saved to %s", target)
        return WriteOutcome(name=candidate.name, action=WriteAction.DRY_RUN, targets=[str(target)], backup=backup)

    store.upsert(candidate)
    logger.info("Template %s written to %s", candidate.name, store.db_path)
    return WriteOutcome(
        name=candidate.name,
        action=WriteAction.WRITTEN,
        targets=[str(store.db_path)],
        backup=backup,
    )

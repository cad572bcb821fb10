"""Locate tournament and validation CSV exports inside the data directories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence


logger = logging.getLogger(__name__)

CONFIGURATION_SUFFIX = "Configuration Sheet"
FIELD_SUFFIX = "Tournament Field"
HISTORY_SUFFIX = "Historical Data"
APPROACH_SUFFIX = "Approach Skill"
RESULTS_SUFFIX = "Tournament Results"

REQUIRED_SUFFIXES = (CONFIGURATION_SUFFIX, FIELD_SUFFIX, HISTORY_SUFFIX, APPROACH_SUFFIX)


def list_csv_files(dirs: Iterable[Path]) -> List[Path]:
    files: List[Path] = []
    for directory in dirs:
        if not directory.is_dir():
            continue
        files.extend(sorted(path for path in directory.iterdir() if path.suffix.lower() == ".csv"))
    return files


def find_file_by_keywords(dirs: Sequence[Path], keywords: Sequence[str]) -> Optional[Path]:
    """First CSV (by file name) whose lowercase name contains every keyword."""

    lowered = [keyword.lower() for keyword in keywords]
    matches = [path for path in list_csv_files(dirs) if all(keyword in path.name.lower() for keyword in lowered)]
    if not matches:
        return None
    return sorted(matches, key=lambda path: path.name)[0]


def expected_file_names(suffix: str, tournament: Optional[str], season: Optional[str]) -> List[str]:
    base = (tournament or "").strip()
    if not base:
        return [f"{suffix}.csv"]
    names = []
    if season:
        names.append(f"{base} ({season}) - {suffix}.csv")
    names.append(f"{base} - {suffix}.csv")
    return names


def resolve_tournament_file(
    suffix: str,
    dirs: Sequence[Path],
    *,
    tournament: Optional[str] = None,
    season: Optional[str] = None,
) -> Optional[Path]:
    """Find ``<tournament> [(season)] - <suffix>.csv``, falling back to any file carrying the suffix."""

    candidates = [path for path in list_csv_files(dirs) if suffix.lower() in path.name.lower()]
    if not candidates:
        return None

    by_name = {path.name.lower(): path for path in reversed(candidates)}
    for name in expected_file_names(suffix, tournament, season):
        match = by_name.get(name.lower())
        if match is not None:
            return match

    base = (tournament or "").strip().lower()
    if base:
        for path in candidates:
            if base in path.name.lower():
                return path

    fallback = sorted(candidates, key=lambda path: path.name)[0]
    logger.debug("No exact %s file for %r; using %s", suffix, tournament, fallback.name)
    return fallback

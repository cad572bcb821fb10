"""Finish-position parsing and the canonical fallback for non-finishers."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from golfweights.models import FinishResult

NON_FINISH_CODES = frozenset({"CUT", "WD", "DQ", "DNS", "DNF", "MC", "MDF"})

_TIED_PATTERN = re.compile(r"^T?(\d+)T?$")


def parse_finish(text: object) -> Optional[int]:
    """Parse ``"T5"``, ``"5T"`` or ``"5"``; withdrawals, cuts and junk give ``None``."""

    if text is None:
        return None
    if isinstance(text, bool):
        return None
    if isinstance(text, int):
        return text if text > 0 else None
    value = str(text).strip().upper()
    if not value or value in NON_FINISH_CODES:
        return None
    match = _TIED_PATTERN.match(value)
    if match:
        position = int(match.group(1))
        return position if position > 0 else None
    try:
        position = int(float(value))
    except ValueError:
        return None
    return position if position > 0 else None


def with_fallback(results: Iterable[FinishResult]) -> List[FinishResult]:
    """Rank non-finishers one place below the worst finisher.

    When nobody in the set has a numeric finish the whole set is dropped.
    """

    entries = list(results)
    positions = [entry.finish_position for entry in entries if entry.finish_position is not None]
    if not positions:
        return []
    fallback = max(positions) + 1
    return [
        entry
        if entry.finish_position is not None
        else FinishResult(player_id=entry.player_id, finish_position=fallback, name=entry.name)
        for entry in entries
    ]

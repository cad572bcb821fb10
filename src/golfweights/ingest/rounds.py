"""Load round-level CSV exports and derive finish results from them."""

from __future__ import annotations

import csv
import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Sequence

from golfweights.config import HistoricalMetric
from golfweights.ingest.finish import parse_finish, with_fallback
from golfweights.models import FinishResult


logger = logging.getLogger(__name__)

Row = Mapping[str, str]


@dataclass(frozen=True)
class FieldPlayer:
    player_id: str
    name: str


def _column_key(header: str) -> str:
    key = re.sub(r"[^a-z0-9]+", "_", header.strip().lower())
    return key.strip("_")


def load_rows(path: Path) -> List[Dict[str, str]]:
    """Read a CSV into dicts keyed by lowercase snake_case column names."""

    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        rows: List[Dict[str, str]] = []
        for raw in reader:
            row = {
                _column_key(key): (value or "").strip()
                for key, value in raw.items()
                if key is not None
            }
            rows.append(row)
    logger.debug("Loaded %d rows from %s", len(rows), path)
    return rows


def parse_float(value: object) -> Optional[float]:
    if value is None:
        return None
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    if text.endswith("%"):
        text = text[:-1]
    try:
        number = float(text)
    except ValueError:
        return None
    if number != number:
        return None
    return number


def row_player_id(row: Row) -> str:
    return str(row.get("dg_id") or "").strip()


def row_event_id(row: Row) -> str:
    return str(row.get("event_id") or "").strip()


def row_year(row: Row) -> Optional[str]:
    raw = str(row.get("year") or row.get("season") or "").strip()
    if not raw:
        return None
    try:
        return str(int(float(raw)))
    except ValueError:
        return None


def row_round(row: Row) -> str:
    return str(row.get("round_num") or row.get("round") or "").strip()


def load_field(path: Path) -> List[FieldPlayer]:
    players: List[FieldPlayer] = []
    seen: set[str] = set()
    for row in load_rows(path):
        player_id = row_player_id(row)
        if not player_id or player_id in seen:
            continue
        seen.add(player_id)
        players.append(FieldPlayer(player_id=player_id, name=row.get("player_name", "")))
    return players


def field_from_rows(rows: Iterable[Row]) -> List[FieldPlayer]:
    players: Dict[str, FieldPlayer] = {}
    for row in rows:
        player_id = row_player_id(row)
        if player_id and player_id not in players:
            players[player_id] = FieldPlayer(player_id=player_id, name=row.get("player_name", ""))
    return list(players.values())


def filter_rows(
    rows: Iterable[Row],
    *,
    event_ids: Optional[Collection[str]] = None,
    season: Optional[str] = None,
    player_ids: Optional[Collection[str]] = None,
    exclude_event: Optional[tuple[str, str]] = None,
) -> List[Row]:
    """Select rows by event, season and player; ``exclude_event`` is ``(event_id, season)``."""

    selected: List[Row] = []
    for row in rows:
        if event_ids is not None and row_event_id(row) not in event_ids:
            continue
        if season is not None and row_year(row) != str(season):
            continue
        if player_ids is not None and row_player_id(row) not in player_ids:
            continue
        if exclude_event is not None and (row_event_id(row), row_year(row)) == exclude_event:
            continue
        selected.append(row)
    return selected


def dedupe_rounds(rows: Iterable[Row]) -> List[Row]:
    """Keep the last row per player, year, round and event."""

    unique: Dict[tuple[str, str, str, str], Row] = {}
    for row in rows:
        key = (row_player_id(row), row_year(row) or "", row_round(row), row_event_id(row))
        unique[key] = row
    return list(unique.values())


def build_results_from_rows(rows: Iterable[Row]) -> List[FinishResult]:
    """Best finish per player across the rows, with non-finishers ranked last."""

    best: Dict[str, Optional[int]] = {}
    names: Dict[str, str] = {}
    for row in rows:
        player_id = row_player_id(row)
        if not player_id:
            continue
        names.setdefault(player_id, row.get("player_name", ""))
        position = parse_finish(row.get("fin_text"))
        current = best.get(player_id)
        if player_id not in best or (position is not None and (current is None or position < current)):
            best[player_id] = position
    results = [
        FinishResult(player_id=player_id, finish_position=position, name=names.get(player_id, ""))
        for player_id, position in best.items()
    ]
    return with_fallback(results)


def build_results_by_year(rows: Iterable[Row], event_id: str) -> Dict[str, List[FinishResult]]:
    by_year: Dict[str, List[Row]] = defaultdict(list)
    for row in rows:
        if row_event_id(row) != str(event_id):
            continue
        year = row_year(row)
        if year is None:
            continue
        by_year[year].append(row)
    results: Dict[str, List[FinishResult]] = {}
    for year, year_rows in sorted(by_year.items()):
        year_results = build_results_from_rows(year_rows)
        if year_results:
            results[year] = year_results
    return results


def group_rounds_by_year(rows: Iterable[Row]) -> Dict[str, List[Row]]:
    grouped: Dict[str, List[Row]] = defaultdict(list)
    for row in rows:
        year = row_year(row)
        if year is not None:
            grouped[year].append(row)
    return dict(sorted(grouped.items()))


def group_rounds_by_event(rows: Iterable[Row]) -> Dict[str, List[Row]]:
    grouped: Dict[str, List[Row]] = defaultdict(list)
    for row in rows:
        event_id = row_event_id(row)
        if event_id:
            grouped[event_id].append(row)
    return dict(grouped)


def load_results_csv(path: Path) -> List[FinishResult]:
    """Read a tournament results export (``dg_id`` plus ``finish``/``fin_text``/``position``)."""

    results: Dict[str, FinishResult] = {}
    for row in load_rows(path):
        player_id = row_player_id(row)
        if not player_id:
            continue
        text = row.get("finish") or row.get("fin_text") or row.get("position") or row.get("finish_position")
        results[player_id] = FinishResult(
            player_id=player_id,
            finish_position=parse_finish(text),
            name=row.get("player_name", ""),
        )
    return with_fallback(results.values())


def historical_metric_value(row: Row, metric: HistoricalMetric) -> Optional[float]:
    if metric.column == "birdies_or_better" and not row.get("birdies_or_better"):
        birdies = parse_float(row.get("birdies"))
        eagles = parse_float(row.get("eagles_or_better"))
        if birdies is None and eagles is None:
            return None
        return (birdies or 0.0) + (eagles or 0.0)
    value = parse_float(row.get(metric.column))
    if value is None:
        return None
    if metric.percent and value > 1:
        value /= 100.0
    return value


def player_ids(players: Sequence[FieldPlayer]) -> set[str]:
    return {player.player_id for player in players}

"""Synthetic tournament exports for pipeline, CLI and API tests.

Player ``pN`` finishes ``N`` in every event. ``sg_putt`` separates the top 20
from the rest; every other round metric is seeded noise, and approach skill is
identical for the whole field so it carries no signal.
"""

from __future__ import annotations

import csv
import random
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

EVENT_ID = "100"
SIMILAR_IDS = ("201", "202")
SEASON = "2026"
TOURNAMENT = "Synthetic Open"
PLAYER_COUNT = 40
ROUNDS = 2

HISTORY_COLUMNS = [
    "dg_id",
    "player_name",
    "event_id",
    "year",
    "round_num",
    "fin_text",
    "score",
    "sg_putt",
    "sg_ott",
    "sg_app",
    "sg_arg",
    "sg_t2g",
    "sg_total",
    "driving_dist",
    "driving_acc",
    "birdies",
    "eagles_or_better",
    "gir",
    "scrambling",
    "great_shots",
    "poor_shots",
    "prox_fw",
    "prox_rgh",
]

APPROACH_BUCKETS = ("50_100_fw", "100_150_fw", "under_150_rgh", "over_150_rgh", "150_200_fw", "over_200_fw")


def player_id(finish: int) -> str:
    return f"p{finish}"


def putting_signal(finish: int) -> float:
    return (1.5 if finish <= 20 else -1.5) - 0.01 * finish


def history_rows(events: Iterable[tuple[str, str]], *, seed: int = 7) -> List[Dict[str, str]]:
    """Rounds for every player in each ``(event_id, year)``."""

    rng = random.Random(seed)
    rows: List[Dict[str, str]] = []
    for event_id, year in events:
        for finish in range(1, PLAYER_COUNT + 1):
            for round_num in range(1, ROUNDS + 1):
                rows.append(
                    {
                        "dg_id": player_id(finish),
                        "player_name": f"Player {finish}",
                        "event_id": event_id,
                        "year": year,
                        "round_num": str(round_num),
                        "fin_text": str(finish),
                        "score": f"{rng.uniform(67, 75):.1f}",
                        "sg_putt": f"{putting_signal(finish) + rng.uniform(-0.05, 0.05):.3f}",
                        "sg_ott": f"{rng.uniform(-1, 1):.3f}",
                        "sg_app": f"{rng.uniform(-1, 1):.3f}",
                        "sg_arg": f"{rng.uniform(-1, 1):.3f}",
                        "sg_t2g": f"{rng.uniform(-1, 1):.3f}",
                        "sg_total": f"{rng.uniform(-2, 2):.3f}",
                        "driving_dist": f"{rng.uniform(280, 320):.1f}",
                        "driving_acc": f"{rng.uniform(0.5, 0.7):.3f}",
                        "birdies": str(rng.randint(1, 6)),
                        "eagles_or_better": str(rng.randint(0, 1)),
                        "gir": f"{rng.uniform(0.55, 0.75):.3f}",
                        "scrambling": f"{rng.uniform(0.45, 0.7):.3f}",
                        "great_shots": str(rng.randint(0, 4)),
                        "poor_shots": str(rng.randint(0, 4)),
                        "prox_fw": f"{rng.uniform(25, 40):.1f}",
                        "prox_rgh": f"{rng.uniform(35, 55):.1f}",
                    }
                )
    return rows


def approach_rows() -> List[Dict[str, str]]:
    rows = []
    for finish in range(1, PLAYER_COUNT + 1):
        row = {"dg_id": player_id(finish), "player_name": f"Player {finish}"}
        for bucket in APPROACH_BUCKETS:
            row[f"{bucket}_gir_rate"] = "0.65"
            row[f"{bucket}_sg_per_shot"] = "0.01"
            row[f"{bucket}_proximity_per_shot"] = "30"
        rows.append(row)
    return rows


def _write_csv(path: Path, columns: Sequence[str], rows: Iterable[Dict[str, str]]) -> Path:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(columns))
        writer.writeheader()
        writer.writerows(rows)
    return path


def write_configuration(data_dir: Path, *, season: str = SEASON) -> Path:
    path = data_dir / f"{TOURNAMENT} - Configuration Sheet.csv"
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["Setting", "Value"])
        writer.writerow(["Current Season", season])
        writer.writerow(["Course Name Key", "SYNTHETIC_OPEN"])
        writer.writerow(["Similar Course IDs", ",".join(SIMILAR_IDS)])
        writer.writerow(["Putting Course IDs", ""])
        writer.writerow(["Similar Courses Weight", "0.3"])
        writer.writerow(["under100", "0.25"])
        writer.writerow(["from100to150", "0.35"])
        writer.writerow(["from150to200", "0.3"])
        writer.writerow(["over200", "0.1"])
    return path


def write_inputs(data_dir: Path, *, current_event_played: bool = True, seed: int = 7) -> Dict[str, Path]:
    """Write every required export; without the current event's rounds the run is pre-event."""

    data_dir.mkdir(parents=True, exist_ok=True)
    events = [(EVENT_ID, "2025")] + [(event_id, SEASON) for event_id in SIMILAR_IDS]
    if current_event_played:
        events.append((EVENT_ID, SEASON))
    else:
        events.append((EVENT_ID, "2024"))
    rows = history_rows(events, seed=seed)
    field = [{"dg_id": player_id(finish), "player_name": f"Player {finish}"} for finish in range(1, PLAYER_COUNT + 1)]
    approach = approach_rows()
    return {
        "configuration": write_configuration(data_dir),
        "history": _write_csv(data_dir / f"{TOURNAMENT} - Historical Data.csv", HISTORY_COLUMNS, rows),
        "field": _write_csv(data_dir / f"{TOURNAMENT} - Tournament Field.csv", ["dg_id", "player_name"], field),
        "approach": _write_csv(
            data_dir / f"{TOURNAMENT} - Approach Skill.csv",
            list(approach[0].keys()),
            approach,
        ),
    }

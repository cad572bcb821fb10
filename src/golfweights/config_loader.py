"""Load per-event configuration and environment-driven run settings."""

from __future__ import annotations

import csv
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from golfweights.ingest.rounds import parse_float


logger = logging.getLogger(__name__)

DEFAULT_TESTS = 1500
DEFAULT_DATA_DIR = Path("data")
DEFAULT_OUTPUT_DIR = Path("output")
COURSE_SETUP_FIELDS = ("under100", "from100to150", "from150to200", "over200")


def _env_float(name: str, default: float, *, clamp_min: float | None = None, clamp_max: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    logger.warning("Invalid flag for %s: %s; using default %s", name, raw, default)
    return default


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def _id_list(value: object) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = re.split(r"[,;|\s]+", str(value))
    ids = []
    for item in items:
        text = str(item).strip()
        if not text:
            continue
        # Spreadsheet exports write integer ids as "14.0".
        if text.endswith(".0") and text[:-2].isdigit():
            text = text[:-2]
        ids.append(text)
    return ids


def _setting_key(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.strip().lower()).strip("_")


@dataclass
class EventConfig:
    """Event-level settings read from the configuration sheet."""

    current_season: Optional[str] = None
    course_name_key: Optional[str] = None
    similar_course_ids: List[str] = field(default_factory=list)
    putting_course_ids: List[str] = field(default_factory=list)
    similar_courses_weight: float = 0.3
    putting_courses_weight: float = 0.35
    course_setup_weights: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Dict[str, object]) -> "EventConfig":
        settings = {_setting_key(str(key)): value for key, value in data.items()}
        setup_source = settings.get("course_setup_weights")
        setup: Dict[str, float] = {}
        for name in COURSE_SETUP_FIELDS:
            raw = setup_source.get(name) if isinstance(setup_source, dict) else settings.get(name.lower())
            value = parse_float(raw)
            if value is not None:
                setup[name] = value
        season = settings.get("current_season")
        numeric_season = parse_float(season)
        if numeric_season is not None and numeric_season.is_integer():
            season = int(numeric_season)
        similar_weight = parse_float(settings.get("similar_courses_weight"))
        putting_weight = parse_float(settings.get("putting_courses_weight"))
        return cls(
            current_season=str(season).strip() if season not in (None, "") else None,
            course_name_key=(str(settings["course_name_key"]).strip() or None)
            if settings.get("course_name_key")
            else None,
            similar_course_ids=_id_list(settings.get("similar_course_ids")),
            putting_course_ids=_id_list(settings.get("putting_course_ids")),
            similar_courses_weight=_clamp01(similar_weight) if similar_weight is not None else 0.3,
            putting_courses_weight=_clamp01(putting_weight) if putting_weight is not None else 0.35,
            course_setup_weights=setup,
        )

    @classmethod
    def load(cls, path: Path) -> "EventConfig":
        """Read a JSON object or a two-column ``setting,value`` CSV."""

        if path.suffix.lower() == ".json":
            return cls.from_mapping(json.loads(path.read_text(encoding="utf-8")))
        data: Dict[str, object] = {}
        with path.open(newline="", encoding="utf-8-sig") as handle:
            for row in csv.reader(handle):
                if len(row) < 2 or not row[0].strip():
                    continue
                if _setting_key(row[0]) == "setting":
                    continue
                data[row[0]] = row[1]
        return cls.from_mapping(data)

    def save(self, path: Path) -> None:
        payload = {
            "current_season": self.current_season,
            "course_name_key": self.course_name_key,
            "similar_course_ids": self.similar_course_ids,
            "putting_course_ids": self.putting_course_ids,
            "similar_courses_weight": self.similar_courses_weight,
            "putting_courses_weight": self.putting_courses_weight,
            "course_setup_weights": self.course_setup_weights,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


@dataclass
class RunSettings:
    """Per-run knobs; CLI flags override the environment defaults."""

    event_id: str
    season: Optional[str] = None
    tournament: Optional[str] = None
    template: Optional[str] = None
    opt_seed: Optional[str] = None
    tests: int = DEFAULT_TESTS
    dry_run: bool = True
    include_current_event_rounds: Optional[bool] = None
    data_dir: Path = DEFAULT_DATA_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    db_path: Optional[Path] = None

    @classmethod
    def from_env(cls, event_id: str, **overrides: object) -> "RunSettings":
        seed = os.getenv("OPT_SEED")
        db_env = os.getenv("GOLFWEIGHTS_DB_PATH")
        settings = cls(
            event_id=str(event_id),
            opt_seed=seed.strip() if seed and seed.strip() else None,
            tests=_env_int("OPT_TESTS", DEFAULT_TESTS, min_value=0),
            dry_run=not _env_flag("WRITE_TEMPLATES", False),
            data_dir=Path(os.getenv("GOLFWEIGHTS_DATA_DIR") or DEFAULT_DATA_DIR),
            output_dir=Path(os.getenv("GOLFWEIGHTS_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR),
            db_path=Path(db_env) if db_env and not db_env.startswith("file:") else None,
        )
        for name, value in overrides.items():
            if value is None:
                continue
            if not hasattr(settings, name):
                raise TypeError(f"Unknown run setting: {name}")
            if name in {"data_dir", "output_dir", "db_path"}:
                value = Path(value)
            setattr(settings, name, value)
        return settings

    def similar_blend(self, config: EventConfig) -> float:
        return _env_float("SIMILAR_COURSES_WEIGHT", config.similar_courses_weight, clamp_min=0.0, clamp_max=1.0)

    def putting_blend(self, config: EventConfig) -> float:
        return _env_float("PUTTING_COURSES_WEIGHT", config.putting_courses_weight, clamp_min=0.0, clamp_max=1.0)

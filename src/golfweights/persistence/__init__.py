"""Persistence layer for weight templates and optimizer run reports."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Mapping, Optional
from uuid import uuid4

from golfweights.config import iter_builtin_templates
from golfweights.models import WeightTemplate


logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data") / "golfweights.sqlite"


@dataclass
class RunRecord:
    run_id: str
    created_at: datetime
    event_id: str
    mode: str
    report: dict


class _SqliteStore:
    """Shared connection handling; ``GOLFWEIGHTS_DB_PATH`` overrides the path."""

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH):
        self._use_uri = False
        env_db = os.getenv("GOLFWEIGHTS_DB_PATH")
        if env_db:
            if env_db.startswith("file:"):
                self.db_path: Path | str = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        elif os.getenv("PYTEST_CURRENT_TEST") and db_path == DEFAULT_DB_PATH:
            test_dir = Path(tempfile.gettempdir()) / "golfweights-test"
            test_dir.mkdir(parents=True, exist_ok=True)
            self.db_path = test_dir / "golfweights.sqlite"
        else:
            self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        except sqlite3.OperationalError:
            fallback_dir = Path(tempfile.gettempdir()) / "golfweights-runtime"
            fallback_dir.mkdir(parents=True, exist_ok=True)
            fallback = fallback_dir / "golfweights.sqlite"
            logger.warning("Could not open %s; using %s", self.db_path, fallback)
            conn = sqlite3.connect(fallback)
            self.db_path = fallback
            self._use_uri = False
            self._create_schema(conn)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS templates (
                name TEXT PRIMARY KEY,
                event_id TEXT,
                payload_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS runs (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                event_id TEXT NOT NULL,
                mode TEXT NOT NULL,
                report_json TEXT NOT NULL
            )
            """
        )
        conn.commit()


class TemplateStore(_SqliteStore):
    """Named weight templates stored as camelCase JSON payloads."""

    def get(self, name: str) -> WeightTemplate:
        with self._connect() as conn:
            row = conn.execute("SELECT payload_json FROM templates WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise KeyError(f"Template {name!r} not found")
        return WeightTemplate.from_payload(json.loads(row["payload_json"]))

    def find(self, name: str) -> Optional[WeightTemplate]:
        try:
            return self.get(name)
        except KeyError:
            return None

    def upsert(self, template: WeightTemplate) -> WeightTemplate:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO templates (name, event_id, payload_json, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    event_id = excluded.event_id,
                    payload_json = excluded.payload_json,
                    updated_at = excluded.updated_at
                """,
                (
                    template.name,
                    template.event_id,
                    json.dumps(template.to_payload()),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.commit()
        logger.info("Stored template %s", template.name)
        return template

    def delete(self, name: str) -> None:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM templates WHERE name = ?", (name,))
            conn.commit()
        if cursor.rowcount == 0:
            raise KeyError(f"Template {name!r} not found")

    def list(self) -> List[WeightTemplate]:
        with self._connect() as conn:
            rows = conn.execute("SELECT payload_json FROM templates ORDER BY name").fetchall()
        return [WeightTemplate.from_payload(json.loads(row["payload_json"])) for row in rows]

    def names(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT name FROM templates ORDER BY name").fetchall()
        return [row["name"] for row in rows]

    def seed_defaults(self, payloads: Optional[Iterable[Mapping]] = None) -> int:
        """Insert the built-in templates that are not stored yet; returns how many were added."""

        existing = set(self.names())
        added = 0
        for payload in payloads if payloads is not None else iter_builtin_templates():
            template = WeightTemplate.from_payload(payload)
            if template.name in existing:
                continue
            self.upsert(template)
            added += 1
        return added


class RunStore(_SqliteStore):
    """Optimizer run reports, newest first."""

    def save_run(
        self,
        *,
        event_id: str,
        mode: str,
        report: dict,
        run_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> RunRecord:
        record = RunRecord(
            run_id=run_id or uuid4().hex,
            created_at=created_at or datetime.now(timezone.utc),
            event_id=str(event_id),
            mode=mode,
            report=report,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO runs (id, created_at, event_id, mode, report_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.run_id,
                    record.created_at.isoformat(),
                    record.event_id,
                    record.mode,
                    json.dumps(report),
                ),
            )
            conn.commit()
        return record

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_record(row)

    def list_runs(self, limit: int = 50, *, event_id: Optional[str] = None) -> List[RunRecord]:
        query = "SELECT * FROM runs"
        params: list = []
        if event_id is not None:
            query += " WHERE event_id = ?"
            params.append(str(event_id))
        query += " ORDER BY datetime(created_at) DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_record(row) for row in rows]

    def _row_to_record(self, row: sqlite3.Row) -> RunRecord:
        return RunRecord(
            run_id=row["id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            event_id=row["event_id"],
            mode=row["mode"],
            report=json.loads(row["report_json"]),
        )


__all__ = ["DEFAULT_DB_PATH", "RunRecord", "RunStore", "TemplateStore"]

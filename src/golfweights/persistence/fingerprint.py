"""Input file hashes and resolved run parameters recorded with every report."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


PathLike = Union[str, Path, None]


class FileHash(BaseModel):
    path: Optional[str] = None
    sha256: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class RunFingerprint(BaseModel):
    algorithm: str = "sha256"
    created_at: str = Field(alias="createdAt")
    event_id: str = Field(alias="eventId")
    season: Optional[str] = None
    tournament: Optional[str] = None
    opt_seed: Optional[str] = Field(default=None, alias="optSeed")
    tests: Optional[int] = None
    dry_run: bool = Field(default=True, alias="dryRun")
    include_current_event_rounds: Optional[bool] = Field(default=None, alias="includeCurrentEventRounds")
    template_override: Optional[str] = Field(default=None, alias="templateOverride")
    files: Dict[str, FileHash] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


def hash_file(path: PathLike) -> Optional[str]:
    """SHA-256 of the file bytes, or ``None`` when there is no such file."""

    if not path:
        return None
    candidate = Path(path)
    if not candidate.is_file():
        return None
    digest = hashlib.sha256()
    with candidate.open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint(
    input_files: Iterable[Tuple[str, PathLike]],
    params: Mapping[str, Any],
) -> RunFingerprint:
    files = {
        label: FileHash(path=str(Path(path).resolve()) if path else None, sha256=hash_file(path))
        for label, path in input_files
    }
    tests = params.get("tests")
    seed = params.get("opt_seed")
    return RunFingerprint(
        created_at=datetime.now(timezone.utc).isoformat(),
        event_id=str(params["event_id"]),
        season=str(params["season"]) if params.get("season") is not None else None,
        tournament=params.get("tournament") or None,
        opt_seed=str(seed) if seed not in (None, "") else None,
        tests=int(tests) if tests is not None else None,
        dry_run=bool(params.get("dry_run", True)),
        include_current_event_rounds=params.get("include_current_event_rounds"),
        template_override=params.get("template_override") or None,
        files=files,
    )

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    season: str | None = None
    tournament: str | None = None
    template: str | None = None
    opt_seed: str | None = None
    tests: int | None = Field(default=None, ge=0, le=100000)
    dry_run: bool = True
    include_current_event_rounds: bool | None = None
    data_dir: str | None = None
    output_dir: str | None = None


class RunSummary(BaseModel):
    run_id: str
    created_at: datetime
    event_id: str
    mode: str


class RunResponse(BaseModel):
    run_id: str
    mode: str
    event_id: str
    season: str | None = None
    recommendation: str | None = None
    report_json: str
    report_text: str
    template_writes: List[dict] = Field(default_factory=list)

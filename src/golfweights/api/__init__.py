"""REST API for the golfweights optimizer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Response

from golfweights.api.schemas import RunRequest, RunResponse, RunSummary, TemplatePayload, TemplateResponse
from golfweights.config_loader import RunSettings
from golfweights.persistence import DEFAULT_DB_PATH, RunRecord, RunStore, TemplateStore
from golfweights.pipeline import MissingInputFileError, run_pipeline


logger = logging.getLogger("uvicorn.error")


def _run_summary(record: RunRecord) -> RunSummary:
    return RunSummary(
        run_id=record.run_id,
        created_at=record.created_at,
        event_id=record.event_id,
        mode=record.mode,
    )


def create_app(db_path: Optional[Path] = None) -> FastAPI:
    app = FastAPI(title="golfweights optimizer")
    template_store = TemplateStore(db_path or DEFAULT_DB_PATH)
    run_store = RunStore(db_path or DEFAULT_DB_PATH)
    template_store.seed_defaults()
    app.state.template_store = template_store
    app.state.run_store = run_store

    def _template_or_404(name: str):
        try:
            return template_store.get(name)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Template not found") from exc

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/templates", response_model=list[TemplateResponse])
    async def list_templates():
        return [TemplateResponse.from_template(template) for template in template_store.list()]

    @app.get("/templates/{name}", response_model=TemplateResponse)
    async def get_template(name: str):
        return TemplateResponse.from_template(_template_or_404(name))

    @app.put("/templates/{name}", response_model=TemplateResponse)
    async def put_template(name: str, payload: TemplatePayload):
        if not payload.group_weights:
            raise HTTPException(status_code=400, detail="group_weights must not be empty")
        template = template_store.upsert(payload.to_template(name))
        logger.info("Template %s stored via API", name)
        return TemplateResponse.from_template(template)

    @app.delete("/templates/{name}", status_code=204)
    async def delete_template(name: str) -> Response:
        try:
            template_store.delete(name)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Template not found") from exc
        return Response(status_code=204)

    @app.get("/runs", response_model=list[RunSummary])
    async def list_runs(limit: int = 50, event_id: Optional[str] = None):
        return [_run_summary(record) for record in run_store.list_runs(limit=limit, event_id=event_id)]

    @app.get("/runs/{run_id}")
    async def get_run(run_id: str) -> dict[str, Any]:
        record = run_store.get_run(run_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return {
            "run_id": record.run_id,
            "created_at": record.created_at.isoformat(),
            "event_id": record.event_id,
            "mode": record.mode,
            "report": record.report,
        }

    @app.post("/runs", response_model=RunResponse)
    def create_run(request: RunRequest):
        settings = RunSettings.from_env(
            request.event_id,
            season=request.season,
            tournament=request.tournament,
            template=request.template,
            opt_seed=request.opt_seed,
            tests=request.tests,
            dry_run=request.dry_run,
            include_current_event_rounds=request.include_current_event_rounds,
            data_dir=request.data_dir,
            output_dir=request.output_dir,
        )
        logger.info("Starting optimizer run for event %s", request.event_id)
        try:
            result = run_pipeline(settings, template_store=template_store, run_store=run_store)
        except MissingInputFileError as exc:
            raise HTTPException(status_code=400, detail=exc.message) from exc
        report = result.report
        recommendation = report.get("recommendation") or {}
        return RunResponse(
            run_id=result.run_id,
            mode=result.mode.value,
            event_id=report["eventId"],
            season=report.get("season"),
            recommendation=recommendation.get("approach"),
            report_json=str(result.paths.json_path),
            report_text=str(result.paths.text_path),
            template_writes=[outcome.to_dict() for outcome in result.template_writes],
        )

    return app

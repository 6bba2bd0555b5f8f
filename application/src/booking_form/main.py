"""FastAPI app: render, preview and publish static booking forms."""

from __future__ import annotations

import sys
import traceback
from datetime import date, datetime
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load .env when running locally (application/.env or repo root .env / .env.local)
_app_dir = Path(__file__).resolve().parent.parent.parent  # application/
_repo_root = _app_dir.parent
load_dotenv(_app_dir / ".env")
load_dotenv(_app_dir / ".env.local")
load_dotenv(_repo_root / ".env")
load_dotenv(_repo_root / ".env.local")

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from . import availability, booking_state, deployer, generator, normalizer, submission

app = FastAPI(title="Static Booking Form Generator", version="0.1.0")


class RenderRequest(BaseModel):
    config: Any = None
    form_id: str = ""
    store_id: str = ""


class SubmissionPreviewRequest(BaseModel):
    config: Any = None
    selection: dict[str, Any] = Field(default_factory=dict)


class SlotRef(BaseModel):
    date: str  # YYYY-MM-DD
    time: str


class AvailabilityPreviewRequest(BaseModel):
    config: Any = None
    start: date | None = None
    now: datetime | None = None
    unavailable: list[SlotRef] = Field(default_factory=list)  # slots the live calendar reports as taken


class DeployRequest(BaseModel):
    store_id: str
    config: Any = None


def _bad_config(e: TypeError) -> JSONResponse:
    print(f"[main] rejected config: {e}", file=sys.stderr)
    return JSONResponse(status_code=400, content={"error": str(e)})


@app.post("/api/forms/render")
async def render_form(req: RenderRequest) -> Response:
    """Generate the artifact without publishing it (admin preview)."""
    try:
        html = generator.generate(req.config, req.form_id, req.store_id)
    except TypeError as e:
        return _bad_config(e)
    return HTMLResponse(content=html, headers={"X-Content-SHA256": generator.content_hash(html)})


@app.post("/api/forms/preview/submission")
async def preview_submission(req: SubmissionPreviewRequest) -> Response:
    """Dry-run a customer selection: validation result, totals and the message that would be sent."""
    try:
        config = normalizer.normalize_config(req.config)
    except TypeError as e:
        return _bad_config(e)
    selection = booking_state.BookingSelection.from_dict(req.selection)
    errors = booking_state.validate_selection(config, selection)
    totals = booking_state.compute_totals(config, selection)
    return JSONResponse(content={
        "ok": not errors,
        "errors": errors,
        "phase": booking_state.phase_of(config, selection),
        "text": submission.build_submission_text(config, selection) if not errors else None,
        **totals.to_dict(),
    })


@app.post("/api/forms/preview/availability")
async def preview_availability(req: AvailabilityPreviewRequest) -> Response:
    """Which slots the published form would offer for a week (calendar) or overall (multiple dates)."""
    try:
        config = normalizer.normalize_config(req.config)
    except TypeError as e:
        return _bad_config(e)
    settings = config.calendar_settings
    now = availability.local_now(req.now)

    if config.is_multiple_dates:
        return JSONResponse(content={
            "mode": settings.booking_mode,
            "dates": [d.isoformat() for d in availability.eligible_dates(settings, now.date())],
            "times": availability.multiple_dates_time_options(settings),
        })

    taken = {(s.date, s.time) for s in req.unavailable}
    start = availability.week_start(req.start or now.date())
    grid = availability.week_grid(settings, start, now, lambda d, t: (d.isoformat(), t) not in taken)
    return JSONResponse(content={
        "mode": settings.booking_mode,
        "week_start": start.isoformat(),
        "days": [d.isoformat() for d in availability.week_dates(start)],
        "rows": [[cell.to_dict() for cell in row] for row in grid],
    })


@app.post("/api/forms/{form_id}/deploy")
def deploy(form_id: str, req: DeployRequest) -> Response:
    """Generate and publish. Unchanged content is reported, not re-uploaded."""
    try:
        html = generator.generate(req.config, form_id, req.store_id)
    except TypeError as e:
        return _bad_config(e)
    try:
        result = deployer.deploy_form(req.store_id, form_id, html)
    except (deployer.DeployError, ValueError) as e:
        traceback.print_exc(file=sys.stderr)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return JSONResponse(content={"success": True, **result.to_dict()})


@app.delete("/api/forms/{form_id}/deploy")
def undeploy(form_id: str, store_id: str) -> Response:
    try:
        deleted = deployer.delete_form(store_id, form_id)
    except (deployer.DeployError, ValueError) as e:
        traceback.print_exc(file=sys.stderr)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return JSONResponse(content={"success": True, "deleted": deleted})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}

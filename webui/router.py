"""FastAPI router for the dashboard: status, config, manual triggers."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from rescan import __version__
from rescan.config import read_redacted_config
from rescan.errors import RescanError
from rescan.logging_config import get_logger
from rescan.models import Scan

logger = get_logger(__name__)

# Paths: support PyInstaller bundle (sys._MEIPASS) and normal run
if getattr(sys, "frozen", False):
    _base = Path(sys._MEIPASS) / "webui"
else:
    _base = Path(__file__).resolve().parent
TEMPLATES_DIR = _base / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["webui"])


def trigger_base_url(request: Request, port: int) -> str:
    """Base URL for trigger endpoints as seen by the browser."""
    host = request.url.hostname or "localhost"
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"{request.url.scheme}://{host}:{port}"


def _uptime(started_at: datetime) -> timedelta:
    elapsed = datetime.now(timezone.utc) - started_at
    return timedelta(seconds=round(elapsed.total_seconds()))


@router.get("/", include_in_schema=False)
def index():
    return RedirectResponse(url="/status", status_code=302)


@router.get("/status", include_in_schema=False)
def status_page(request: Request):
    processor = request.app.state.processor
    return templates.TemplateResponse(
        request,
        "status.html",
        {
            "title": "Rescan Status",
            "remaining": processor.scans_remaining,
            "processed": processor.scans_processed,
            "running": processor.running,
            "uptime": _uptime(request.app.state.started_at),
            "version": __version__,
        },
    )


@router.get("/config", include_in_schema=False)
def config_page(request: Request):
    return templates.TemplateResponse(
        request,
        "config.html",
        {
            "title": "Rescan Config",
            "config_text": read_redacted_config(request.app.state.config),
            "description": "Sensitive fields are redacted.",
        },
    )


@router.get("/trigger", include_in_schema=False)
def trigger_page(request: Request):
    base_url = trigger_base_url(request, request.app.state.config.webui.port)
    return templates.TemplateResponse(
        request,
        "trigger.html",
        {
            "title": "Rescan Triggers",
            "base_url": base_url,
            "manual_url": f"{base_url}/triggers/manual",
        },
    )


@router.post("/triggers/manual")
async def manual_trigger(request: Request):
    """Queue a scan for every ``dir`` given in the query string or form body."""
    dirs = list(request.query_params.getlist("dir"))
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(
        ("application/x-www-form-urlencoded", "multipart/form-data")
    ):
        form = await request.form()
        dirs.extend(str(value) for value in form.getlist("dir"))

    dirs = [d.strip() for d in dirs if d.strip()]
    if not dirs:
        raise HTTPException(status_code=400, detail="No directories given")

    if not request.app.state.processor.add(*(Scan(folder=d) for d in dirs)):
        raise HTTPException(status_code=503, detail="Scan processor has stopped")
    logger.info(f"Manual trigger queued {len(dirs)} scans")
    return {"queued": len(dirs)}


@router.get("/health")
def health(request: Request):
    error = None
    for target in request.app.state.processor.targets:
        try:
            target.available()
        except RescanError as exc:
            error = str(exc)
            break

    if error is not None:
        return JSONResponse({"status": "unavailable", "error": error}, status_code=503)
    return {"status": "ok"}

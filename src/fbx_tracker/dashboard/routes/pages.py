"""Page route serving the chart dashboard."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from fbx_tracker.exceptions import NoDataError

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def dashboard_index(request: Request) -> HTMLResponse:
    """Main dashboard page. Renders the current snapshot; the chart loads /api/history."""
    templates: Jinja2Templates = request.app.state.templates
    service = request.app.state.service

    try:
        snapshot = await service.current()
    except NoDataError:
        snapshot = None

    health = await service.health()

    return templates.TemplateResponse(request, "index.html", {
        "snapshot": snapshot,
        "fbx01": snapshot.rate_for("FBX01") if snapshot else None,
        "fbx11": snapshot.rate_for("FBX11") if snapshot else None,
        "differential": snapshot.differential if snapshot else None,
        "health": health,
    })

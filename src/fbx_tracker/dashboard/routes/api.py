"""JSON API endpoints over the tracker service.

Every response uses the same envelope: ``{"success": true, "data": ...}``
on success and ``{"success": false, "error": "..."}`` on failure.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fbx_tracker.exceptions import (
    MissingRateDataError,
    NoDataError,
    ScrapeFailedError,
)
from fbx_tracker.service import TrackerService

log = structlog.get_logger(__name__)

router = APIRouter()


def _service(request: Request) -> TrackerService:
    return request.app.state.service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


def _ok(**content: Any) -> JSONResponse:
    return JSONResponse(content={"success": True, **content})


@router.get("/current")
async def get_current(request: Request) -> JSONResponse:
    """Latest snapshot with both route readings and the differential."""
    try:
        snapshot = await _service(request).current()
    except NoDataError as e:
        return _error(404, str(e))
    except Exception as e:
        log.error("api_current_failed", error=str(e))
        return _error(500, str(e))
    return _ok(data=snapshot.to_dict())


@router.get("/history")
async def get_history(request: Request) -> JSONResponse:
    """History log, oldest first (at most 90 entries)."""
    try:
        history = await _service(request).history()
    except Exception as e:
        log.error("api_history_failed", error=str(e))
        return _error(500, str(e))
    return _ok(data=history)


@router.get("/differential")
async def get_differential(request: Request) -> JSONResponse:
    """FBX01 - FBX11 spread derived from the current snapshot."""
    try:
        view = await _service(request).differential_view()
    except NoDataError as e:
        return _error(404, str(e))
    except MissingRateDataError as e:
        return _error(500, str(e))
    except Exception as e:
        log.error("api_differential_failed", error=str(e))
        return _error(500, str(e))
    return _ok(data=view)


@router.post("/scrape")
async def trigger_scrape(request: Request) -> JSONResponse:
    """Run a scrape now and return the persisted snapshot."""
    log.info("manual_scrape_triggered")
    try:
        snapshot = await _service(request).trigger()
    except ScrapeFailedError as e:
        return _error(500, str(e))
    except Exception as e:
        log.error("api_scrape_failed", error=str(e), exc_info=True)
        return _error(500, str(e))
    return _ok(message="Scraping completed successfully", data=snapshot.to_dict())


@router.get("/health")
async def get_health(request: Request) -> JSONResponse:
    """Data availability, history size and last update time."""
    return JSONResponse(content=await _service(request).health())

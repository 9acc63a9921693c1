"""FastAPI application factory for the FBX tracker API and dashboard page."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.templating import Jinja2Templates

from fbx_tracker.dashboard.routes import api, pages

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _format_usd(value: Any) -> str:
    """Format a rate as ``$2,668.40``; None renders as N/A."""
    if value is None:
        return "N/A"
    return f"${float(value):,.2f}"


def _signed_usd(value: Any) -> str:
    """Format a differential with an explicit sign (e.g. ``-$110.40``)."""
    if value is None:
        return "N/A"
    amount = float(value)
    sign = "-" if amount < 0 else "+"
    return f"{sign}${abs(amount):,.2f}"


def create_dashboard_app(
    lifespan: Any = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.
        cors_origins: Allowed CORS origins. Defaults to all origins.

    Returns:
        Configured FastAPI application with templates and routes.
        Route handlers expect ``app.state.service`` (a TrackerService).
    """
    app = FastAPI(
        title="FBX Freight Rate Tracker",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["usd"] = _format_usd
    templates.env.filters["signed_usd"] = _signed_usd
    app.state.templates = templates

    app.include_router(pages.router)
    app.include_router(api.router, prefix="/api")

    return app

"""Entry point for the FBX freight rate tracker.

Two commands:
- ``once``: scrape both lanes, persist, exit (no server). Exit code 1 when
  no route produced a rate.
- ``serve`` (default): refresh stale data, start the 6-hourly scheduler and
  serve the API + dashboard with uvicorn. The scheduler and the request
  handlers share one asyncio event loop via FastAPI's lifespan.

Component wiring order (in _build_components):
1. RouteFetcher (httpx client + markup extractor)
2. RateAggregator (sequential FBX01 / FBX11 scrape)
3. HistoryStore (current snapshot + bounded history files)
4. TrackerService (locked scrape-and-save, read views)
5. ScrapeScheduler (wall-clock aligned recurring trigger)
"""

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI

from fbx_tracker.aggregator import RateAggregator
from fbx_tracker.config import AppSettings
from fbx_tracker.logging import get_logger, setup_logging
from fbx_tracker.scheduler import ScrapeScheduler
from fbx_tracker.scraper.fetcher import RouteFetcher
from fbx_tracker.service import TrackerService
from fbx_tracker.store import HistoryStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all tracker components from settings.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    fetcher = RouteFetcher(settings.scraper)

    aggregator = RateAggregator(
        fetcher,
        pacing_delay=settings.scraper.pacing_delay,
    )

    data_dir = Path(settings.storage.data_dir)
    store = HistoryStore(
        current_path=data_dir / settings.storage.current_file,
        history_path=data_dir / settings.storage.history_file,
        max_entries=settings.storage.history_limit,
    )

    service = TrackerService(
        aggregator,
        store,
        stale_after_hours=settings.schedule.stale_after_hours,
    )

    scheduler = ScrapeScheduler(
        lambda: service.run_once(trigger="schedule"),
        interval_hours=settings.schedule.interval_hours,
    )

    return {
        "fetcher": fetcher,
        "aggregator": aggregator,
        "store": store,
        "service": service,
        "scheduler": scheduler,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage tracker component lifecycle within the FastAPI application.

    On startup: exposes the service on app.state, refreshes missing or
    stale data, starts the scheduler.

    On shutdown: stops the scheduler and closes the HTTP client.
    """
    logger = get_logger("fbx_tracker.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    app.state.service = components["service"]

    if settings.schedule.refresh_on_startup:
        try:
            await components["service"].refresh_if_stale()
        except Exception:
            logger.error("startup_refresh_failed", exc_info=True)

    if settings.schedule.enabled:
        await components["scheduler"].start()

    logger.info(
        "server_ready",
        host=settings.server.host,
        port=settings.server.port,
        schedule_hours=settings.schedule.interval_hours,
    )

    yield

    await components["scheduler"].stop()
    await components["fetcher"].aclose()
    logger.info("fbx_tracker_stopped")


async def run_once(settings: AppSettings) -> bool:
    """Single scrape + persist without a server. Returns True when data was saved."""
    components = _build_components(settings)
    try:
        snapshot = await components["service"].run_once(trigger="cli")
    finally:
        await components["fetcher"].aclose()
    return snapshot is not None


async def serve(settings: AppSettings) -> None:
    """Run the API, dashboard and scheduler in a single event loop via uvicorn."""
    from fbx_tracker.dashboard.app import create_dashboard_app

    logger = get_logger("fbx_tracker.main")
    components = _build_components(settings)

    app = create_dashboard_app(
        lifespan=lifespan,
        cors_origins=settings.server.cors_origins,
    )
    app.state.settings = settings
    app.state.components = components

    logger.info(
        "starting_server",
        host=settings.server.host,
        port=settings.server.port,
        data_dir=settings.storage.data_dir,
    )

    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fbx-tracker",
        description="Track the FBX01 (Shanghai-LA) vs FBX11 (Shanghai-Rotterdam) freight rate spread.",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("once", help="Scrape both routes once, save, and exit")
    subparsers.add_parser("serve", help="Serve the API and scrape on a schedule (default)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Synchronous entry point."""
    args = _parse_args(argv)

    settings = AppSettings()
    setup_logging(settings.log_level)

    if args.command == "once":
        saved = asyncio.run(run_once(settings))
        if not saved:
            get_logger("fbx_tracker.main").error("scrape_failed", note="No route returned a rate")
        return 0 if saved else 1

    asyncio.run(serve(settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())

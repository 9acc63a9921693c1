"""Tracker service -- the single entry point for scraping and reading FBX data.

Both the recurring scheduler and the on-demand API trigger go through
run_once(), which holds an asyncio lock for the whole scrape-and-save
sequence so two runs in the same process never interleave their writes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fbx_tracker.aggregator import RateAggregator, compute_differential
from fbx_tracker.exceptions import MissingRateDataError, NoDataError, ScrapeFailedError
from fbx_tracker.logging import get_logger, scrape_context
from fbx_tracker.models import Snapshot, format_timestamp
from fbx_tracker.store import HistoryStore

logger = get_logger(__name__)


class TrackerService:
    """Coordinates aggregation, persistence and the read views served by the API.

    Args:
        aggregator: Scrapes both lanes and builds a Snapshot.
        store: Persists the current snapshot and the history log.
        stale_after_hours: Age after which the current snapshot counts as stale.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        aggregator: RateAggregator,
        store: HistoryStore,
        stale_after_hours: float = 7.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._store = store
        self._stale_after = timedelta(hours=stale_after_hours)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._run_lock = asyncio.Lock()

    # ──────────────────────────────────────────────
    # Scraping
    # ──────────────────────────────────────────────

    async def run_once(self, trigger: str = "manual") -> Snapshot | None:
        """Scrape both lanes and persist the result if at least one rate came back.

        Returns the persisted Snapshot, or None when every route failed
        (nothing is written in that case and the previous snapshot stays).
        """
        async with self._run_lock:
            with scrape_context(trigger):
                snapshot = await self._aggregator.run()
                if not snapshot.has_rates:
                    logger.error("fbx_scrape_no_rates")
                    return None
                history = await self._store.save_snapshot(snapshot)
                logger.info(
                    "fbx_scrape_persisted",
                    routes=sorted(snapshot.routes),
                    history_points=len(history),
                )
                return snapshot

    async def trigger(self) -> Snapshot:
        """On-demand scrape. Raises ScrapeFailedError when no route produced a rate."""
        snapshot = await self.run_once(trigger="api")
        if snapshot is None:
            raise ScrapeFailedError("Scraping failed")
        return snapshot

    async def refresh_if_stale(self) -> bool:
        """Scrape when there is no snapshot yet or the stored one is stale.

        Returns True when a scrape ran and persisted data.
        """
        snapshot = await self._store.load_snapshot()
        if snapshot is None:
            logger.info("no_existing_data", action="initial_scrape")
        elif self.is_stale(snapshot):
            logger.warning(
                "existing_data_stale",
                age_hours=round(self.age_of(snapshot).total_seconds() / 3600, 1),
                action="refresh_scrape",
            )
        else:
            logger.info("existing_data_loaded", timestamp=format_timestamp(snapshot.timestamp))
            return False

        return await self.run_once(trigger="startup") is not None

    # ──────────────────────────────────────────────
    # Read views
    # ──────────────────────────────────────────────

    async def current(self) -> Snapshot:
        snapshot = await self._store.load_snapshot()
        if snapshot is None:
            raise NoDataError("No data available. Run initial scrape first.")
        return snapshot

    async def history(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in await self._store.load_history()]

    async def differential_view(self) -> dict[str, Any]:
        """Current FBX01/FBX11 spread, recomputed if the snapshot lacks one."""
        snapshot = await self._store.load_snapshot()
        if snapshot is None:
            raise NoDataError("No data available")

        fbx01 = snapshot.rate_for("FBX01")
        fbx11 = snapshot.rate_for("FBX11")
        if fbx01 is None or fbx11 is None:
            raise MissingRateDataError("Missing rate data")

        differential = snapshot.differential or compute_differential(fbx01, fbx11)
        return {
            "fbx01": float(fbx01),
            "fbx11": float(fbx11),
            "differential": float(differential.amount),
            "percentage": float(differential.percentage),
            "interpretation": differential.interpretation.value,
            "timestamp": format_timestamp(snapshot.timestamp),
        }

    async def health(self) -> dict[str, Any]:
        snapshot = await self._store.load_snapshot()
        history = await self._store.load_history()
        return {
            "success": True,
            "status": "healthy",
            "timestamp": format_timestamp(self._clock()),
            "dataAvailable": snapshot is not None,
            "dataStale": snapshot is not None and self.is_stale(snapshot),
            "historicalPoints": len(history),
            "lastUpdate": format_timestamp(snapshot.timestamp) if snapshot else None,
        }

    def age_of(self, snapshot: Snapshot) -> timedelta:
        return self._clock() - snapshot.timestamp

    def is_stale(self, snapshot: Snapshot) -> bool:
        return self.age_of(snapshot) > self._stale_after

"""Tests for TrackerService (scrape trigger, persistence and read views)."""

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from helpers import FIXED_NOW, no_sleep
from fbx_tracker.aggregator import ROUTES, RateAggregator
from fbx_tracker.exceptions import MissingRateDataError, NoDataError, ScrapeFailedError
from fbx_tracker.models import Snapshot
from fbx_tracker.scraper.fetcher import RouteFetcher
from fbx_tracker.service import TrackerService


@pytest.fixture
def aggregator() -> AsyncMock:
    return AsyncMock(spec=RateAggregator)


@pytest.fixture
def service(aggregator: AsyncMock, store) -> TrackerService:
    return TrackerService(aggregator, store, stale_after_hours=6, clock=lambda: FIXED_NOW)


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_persists_successful_run(self, service, aggregator, store, make_snapshot) -> None:
        aggregator.run.return_value = make_snapshot()

        result = await service.run_once()

        assert result is not None
        assert (await store.load_snapshot()).rate_for("FBX01") == Decimal("2668.40")
        assert len(await store.load_history()) == 1

    @pytest.mark.asyncio
    async def test_persists_partial_run(self, service, aggregator, store, make_snapshot) -> None:
        aggregator.run.return_value = make_snapshot(fbx01=None)

        result = await service.run_once()

        assert result is not None
        history = await store.load_history()
        assert history[0].fbx01 is None
        assert history[0].fbx11 == Decimal("2778.80")

    @pytest.mark.asyncio
    async def test_total_failure_writes_nothing(self, service, aggregator, store) -> None:
        aggregator.run.return_value = Snapshot(timestamp=FIXED_NOW)

        assert await service.run_once() is None
        assert await store.load_snapshot() is None
        assert await store.load_history() == []

    @pytest.mark.asyncio
    async def test_runs_do_not_overlap(self, aggregator, store, make_snapshot) -> None:
        active = 0
        max_active = 0

        async def slow_run() -> Snapshot:
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.01)
            active -= 1
            return make_snapshot()

        aggregator.run.side_effect = slow_run
        service = TrackerService(aggregator, store)

        await asyncio.gather(service.run_once(), service.run_once(trigger="schedule"))

        assert max_active == 1
        assert len(await store.load_history()) == 2


class TestTrigger:

    @pytest.mark.asyncio
    async def test_returns_snapshot(self, service, aggregator, make_snapshot) -> None:
        aggregator.run.return_value = make_snapshot()
        snapshot = await service.trigger()
        assert snapshot.differential.amount == Decimal("-110.40")

    @pytest.mark.asyncio
    async def test_failure_raises_and_keeps_previous_data(
        self, service, aggregator, store, make_snapshot
    ) -> None:
        aggregator.run.return_value = make_snapshot()
        await service.trigger()
        before_snapshot = await store.load_snapshot()
        before_history = await store.load_history()

        aggregator.run.return_value = Snapshot(timestamp=FIXED_NOW + timedelta(hours=6))
        with pytest.raises(ScrapeFailedError, match="Scraping failed"):
            await service.trigger()

        assert await store.load_snapshot() == before_snapshot
        assert await store.load_history() == before_history

    @pytest.mark.asyncio
    async def test_unreachable_site_raises_and_keeps_previous_data(
        self, mock_settings, route_pages, store, make_snapshot
    ) -> None:
        client = route_pages({
            ROUTES[0].slug: httpx.ConnectError("connection refused"),
            ROUTES[1].slug: httpx.ConnectError("connection refused"),
        })
        fetcher = RouteFetcher(mock_settings.scraper, client=client)
        service = TrackerService(
            RateAggregator(fetcher, pacing_delay=0.0, sleep=no_sleep),
            store,
            clock=lambda: FIXED_NOW,
        )
        await store.save_snapshot(make_snapshot(timestamp=FIXED_NOW - timedelta(hours=6)))
        before_snapshot = await store.load_snapshot()
        before_history = await store.load_history()

        try:
            with pytest.raises(ScrapeFailedError):
                await service.trigger()
        finally:
            await client.aclose()

        assert await store.load_snapshot() == before_snapshot
        assert await store.load_history() == before_history


class TestReadViews:

    @pytest.mark.asyncio
    async def test_current_without_data_raises(self, service) -> None:
        with pytest.raises(NoDataError):
            await service.current()

    @pytest.mark.asyncio
    async def test_history_without_data_is_empty(self, service) -> None:
        assert await service.history() == []

    @pytest.mark.asyncio
    async def test_differential_view(self, service, store, make_snapshot) -> None:
        await store.save_snapshot(make_snapshot())

        view = await service.differential_view()

        assert view == {
            "fbx01": 2668.4,
            "fbx11": 2778.8,
            "differential": -110.4,
            "percentage": -3.97,
            "interpretation": "Rotterdam Premium",
            "timestamp": "2025-03-14T09:30:00.000Z",
        }

    @pytest.mark.asyncio
    async def test_differential_view_recomputes_when_absent(
        self, service, store, make_snapshot
    ) -> None:
        snapshot = make_snapshot(fbx01="3000", fbx11="2000")
        snapshot.differential = None
        await store.save_snapshot(snapshot)

        view = await service.differential_view()

        assert view["differential"] == 1000.0
        assert view["percentage"] == 50.0
        assert view["interpretation"] == "LA Premium"

    @pytest.mark.asyncio
    async def test_differential_view_without_data(self, service) -> None:
        with pytest.raises(NoDataError):
            await service.differential_view()

    @pytest.mark.asyncio
    async def test_differential_view_missing_route(self, service, store, make_snapshot) -> None:
        await store.save_snapshot(make_snapshot(fbx11=None))
        with pytest.raises(MissingRateDataError, match="Missing rate data"):
            await service.differential_view()

    @pytest.mark.asyncio
    async def test_health_without_data(self, service) -> None:
        health = await service.health()
        assert health == {
            "success": True,
            "status": "healthy",
            "timestamp": "2025-03-14T09:30:00.000Z",
            "dataAvailable": False,
            "dataStale": False,
            "historicalPoints": 0,
            "lastUpdate": None,
        }

    @pytest.mark.asyncio
    async def test_health_marks_stale_data(self, aggregator, store, make_snapshot) -> None:
        await store.save_snapshot(make_snapshot(timestamp=FIXED_NOW - timedelta(hours=7)))
        service = TrackerService(aggregator, store, stale_after_hours=6, clock=lambda: FIXED_NOW)

        health = await service.health()

        assert health["dataAvailable"] is True
        assert health["dataStale"] is True
        assert health["historicalPoints"] == 1
        assert health["lastUpdate"] == "2025-03-14T02:30:00.000Z"

    @pytest.mark.asyncio
    async def test_health_default_threshold_allows_late_run(
        self, aggregator, store, make_snapshot
    ) -> None:
        await store.save_snapshot(
            make_snapshot(timestamp=FIXED_NOW - timedelta(hours=6, seconds=1))
        )
        service = TrackerService(aggregator, store, clock=lambda: FIXED_NOW)

        assert (await service.health())["dataStale"] is False


class TestRefreshIfStale:

    @pytest.mark.asyncio
    async def test_scrapes_when_no_data(self, service, aggregator, make_snapshot) -> None:
        aggregator.run.return_value = make_snapshot()
        assert await service.refresh_if_stale() is True
        aggregator.run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_fresh_data(self, service, aggregator, store, make_snapshot) -> None:
        await store.save_snapshot(make_snapshot(timestamp=FIXED_NOW - timedelta(hours=1)))
        assert await service.refresh_if_stale() is False
        aggregator.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scrapes_stale_data(self, service, aggregator, store, make_snapshot) -> None:
        await store.save_snapshot(make_snapshot(timestamp=FIXED_NOW - timedelta(hours=6, minutes=1)))
        aggregator.run.return_value = make_snapshot()

        assert await service.refresh_if_stale() is True
        assert len(await store.load_history()) == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_stale_snapshot(
        self, service, aggregator, store, make_snapshot
    ) -> None:
        stale = make_snapshot(timestamp=FIXED_NOW - timedelta(days=1))
        await store.save_snapshot(stale)
        aggregator.run.return_value = Snapshot(timestamp=FIXED_NOW)

        assert await service.refresh_if_stale() is False
        assert (await store.load_snapshot()).timestamp == stale.timestamp

"""Shared test fixtures for the FBX freight rate tracker."""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

import httpx
import pytest

from fbx_tracker.aggregator import compute_differential
from fbx_tracker.config import AppSettings, ScraperSettings, StorageSettings
from fbx_tracker.models import RateReading, Snapshot
from fbx_tracker.store import HistoryStore
from helpers import FIXED_NOW


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no pacing, fast timeout)."""
    return AppSettings(
        log_level="DEBUG",
        scraper=ScraperSettings(
            base_url="https://terminal.test/enterprise/terminal",
            pacing_delay=0.0,
            request_timeout=1.0,
        ),
        storage=StorageSettings(),
    )


@pytest.fixture
def store(tmp_path) -> HistoryStore:
    """HistoryStore writing into a per-test temporary directory."""
    return HistoryStore(
        current_path=tmp_path / "fbx_rates.json",
        history_path=tmp_path / "fbx_history.json",
    )


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory for snapshots with optional FBX01 / FBX11 rates."""

    def _make(
        fbx01: str | None = "2668.40",
        fbx11: str | None = "2778.80",
        timestamp: datetime = FIXED_NOW,
    ) -> Snapshot:
        snapshot = Snapshot(timestamp=timestamp)
        if fbx01 is not None:
            snapshot.routes["FBX01"] = RateReading("FBX01", Decimal(fbx01), "Shanghai → LA")
        if fbx11 is not None:
            snapshot.routes["FBX11"] = RateReading("FBX11", Decimal(fbx11), "Shanghai → Rotterdam")
        if fbx01 is not None and fbx11 is not None:
            snapshot.differential = compute_differential(Decimal(fbx01), Decimal(fbx11))
        return snapshot

    return _make


@pytest.fixture
def route_pages() -> Callable[[dict[str, httpx.Response | Exception]], httpx.AsyncClient]:
    """Build an httpx.AsyncClient whose responses are keyed by a substring of the URL."""

    def _build(responses: dict[str, httpx.Response | Exception]) -> httpx.AsyncClient:
        def handler(request: httpx.Request) -> httpx.Response:
            for fragment, outcome in responses.items():
                if fragment in str(request.url):
                    if isinstance(outcome, Exception):
                        raise outcome
                    return outcome
            return httpx.Response(404, text="not found")

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build


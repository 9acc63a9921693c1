"""FBX01 / FBX11 aggregation -- one sequential scrape of both lanes.

Each run fetches the two fixed routes one after the other, pausing after
every request so the terminal site is not hammered, then combines whatever
readings came back into a Snapshot. The differential is only computed when
both lanes were read.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from fbx_tracker.logging import get_logger
from fbx_tracker.models import (
    DifferentialResult,
    Interpretation,
    RateReading,
    RouteDefinition,
    Snapshot,
)
from fbx_tracker.scraper.fetcher import RouteFetcher

logger = get_logger(__name__)

# Changing the tracked lanes is a source edit, not a runtime setting.
# Order matters: the differential is ROUTES[0] - ROUTES[1].
ROUTES: tuple[RouteDefinition, ...] = (
    RouteDefinition(
        code="FBX01",
        slug="fbx-01-china-to-north-america-west-coast",
        description="Shanghai → LA",
    ),
    RouteDefinition(
        code="FBX11",
        slug="fbx-11-china-to-northern-europe",
        description="Shanghai → Rotterdam",
    ),
)

_CENT = Decimal("0.01")


def compute_differential(rate_a: Decimal, rate_b: Decimal) -> DifferentialResult:
    """Compute the signed FBX01 - FBX11 spread.

    Args:
        rate_a: FBX01 (Shanghai -> LA) rate.
        rate_b: FBX11 (Shanghai -> Rotterdam) rate. Must be non-zero.

    Returns:
        DifferentialResult with amount and percentage rounded to cents,
        labelled "LA Premium" when amount >= 0.
    """
    diff = rate_a - rate_b
    percentage = diff / rate_b * Decimal("100")
    return DifferentialResult(
        amount=diff.quantize(_CENT, rounding=ROUND_HALF_UP),
        percentage=percentage.quantize(_CENT, rounding=ROUND_HALF_UP),
        interpretation=(
            Interpretation.LA_PREMIUM if diff >= 0 else Interpretation.ROTTERDAM_PREMIUM
        ),
    )


class RateAggregator:
    """Runs the route fetcher over both lanes and builds a Snapshot.

    Args:
        fetcher: Route fetcher used for every lane.
        pacing_delay: Seconds to wait after each request, success or failure.
        routes: Lanes to scrape, in differential order.
        clock: Returns the current UTC time (injectable for tests).
        sleep: Awaitable sleep (injectable so tests skip the pacing delay).
    """

    def __init__(
        self,
        fetcher: RouteFetcher,
        pacing_delay: float = 2.0,
        routes: tuple[RouteDefinition, ...] = ROUTES,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._pacing_delay = pacing_delay
        self._routes = routes
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep

    async def run(self) -> Snapshot:
        """Scrape every lane sequentially. Always returns a Snapshot, possibly empty."""
        logger.info("fbx_scrape_started", routes=[r.code for r in self._routes])
        snapshot = Snapshot(timestamp=self._clock())

        for route in self._routes:
            reading = await self._fetcher.fetch(route)
            if reading is not None:
                snapshot.routes[route.code] = reading
            await self._sleep(self._pacing_delay)

        snapshot.differential = self._differential_for(snapshot.routes)
        if snapshot.differential is not None:
            logger.info(
                "differential_computed",
                amount=str(snapshot.differential.amount),
                percentage=str(snapshot.differential.percentage),
                interpretation=snapshot.differential.interpretation.value,
            )

        logger.info(
            "fbx_scrape_finished",
            scraped=len(snapshot.routes),
            expected=len(self._routes),
        )
        return snapshot

    def _differential_for(
        self, readings: dict[str, RateReading]
    ) -> DifferentialResult | None:
        if len(self._routes) < 2:
            return None
        first = readings.get(self._routes[0].code)
        second = readings.get(self._routes[1].code)
        if first is None or second is None:
            return None
        return compute_differential(first.rate, second.rate)

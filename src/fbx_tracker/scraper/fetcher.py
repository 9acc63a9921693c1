"""Single-route page fetcher for the Freightos terminal.

One GET per call with a browser-like header set and a fixed timeout.
Every transport or HTTP failure is logged and reported as a missing
reading; nothing propagates to the aggregator.
"""

import httpx

from fbx_tracker.config import ScraperSettings
from fbx_tracker.logging import get_logger
from fbx_tracker.models import RateReading, RouteDefinition
from fbx_tracker.scraper.extractor import CurrentIndexExtractor, RateExtractor

logger = get_logger(__name__)


class RouteFetcher:
    """Fetches a route's terminal page and extracts its current rate.

    Usage:
        fetcher = RouteFetcher(settings.scraper)
        reading = await fetcher.fetch(route)
        await fetcher.aclose()

    Args:
        settings: Scraper settings (base URL, headers, timeout, bounds).
        extractor: Markup adapter. Defaults to CurrentIndexExtractor.
        client: Optional pre-built httpx.AsyncClient (tests inject one
            backed by httpx.MockTransport). Injected clients are not closed
            by aclose().
    """

    def __init__(
        self,
        settings: ScraperSettings,
        extractor: RateExtractor | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._extractor = extractor or CurrentIndexExtractor(
            anchor_phrase=settings.anchor_phrase,
            min_rate=settings.min_rate,
            max_rate=settings.max_rate,
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._settings.user_agent,
            "Accept": self._settings.accept,
        }

    def url_for(self, route: RouteDefinition) -> str:
        return f"{self._settings.base_url.rstrip('/')}/{route.slug}/"

    async def fetch(self, route: RouteDefinition) -> RateReading | None:
        """Fetch one route. Returns None on any network, HTTP or extraction miss."""
        url = self.url_for(route)
        try:
            resp = await self._client.get(
                url,
                headers=self.headers,
                timeout=self._settings.request_timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "route_fetch_failed",
                route=route.code,
                status_code=e.response.status_code,
            )
            return None
        except httpx.HTTPError as e:
            logger.warning(
                "route_fetch_failed",
                route=route.code,
                error=f"{type(e).__name__}: {e}",
            )
            return None

        rate = self._extractor.extract(resp.text)
        if rate is None:
            logger.warning("rate_not_found", route=route.code, url=url)
            return None

        logger.info("route_rate_scraped", route=route.code, rate=str(rate))
        return RateReading(
            route_code=route.code,
            rate=rate,
            description=route.description,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

"""Scraping layer -- terminal page fetching and rate extraction."""

from fbx_tracker.scraper.extractor import CurrentIndexExtractor, RateExtractor
from fbx_tracker.scraper.fetcher import RouteFetcher

__all__ = ["CurrentIndexExtractor", "RateExtractor", "RouteFetcher"]

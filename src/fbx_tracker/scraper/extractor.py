"""Rate extraction from Freightos terminal markup.

The terminal page has no stable API or element ids, so the current index
value is located by its visible label ("Current FBX") and the first dollar
amount printed with it. Everything site-specific lives in this module; the
aggregator only sees the RateExtractor protocol.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Protocol

from bs4 import BeautifulSoup, NavigableString, Tag

from fbx_tracker.logging import get_logger

logger = get_logger(__name__)

# "$" followed by digits with optional thousands separators and optional decimals.
CURRENCY_PATTERN = re.compile(r"\$([0-9,]+\.?\d*)")

# Enclosing elements searched (the label element, then its container) when
# the label and price are split across sibling tags, e.g.
# <div><span>Current FBX</span><span>$2,668.40</span></div>.
_MAX_ANCESTOR_DEPTH = 2


class RateExtractor(Protocol):
    """Anything that can turn a page of markup into a single index value."""

    def extract(self, markup: str) -> Decimal | None: ...


class CurrentIndexExtractor:
    """Finds the labelled current FBX value in a terminal route page.

    Values at or below ``min_rate`` or at or above ``max_rate`` are rejected,
    which guards against picking up an unrelated number elsewhere on the page.
    """

    def __init__(
        self,
        anchor_phrase: str = "Current FBX",
        min_rate: Decimal = Decimal("0"),
        max_rate: Decimal = Decimal("50000"),
    ) -> None:
        self._anchor_phrase = anchor_phrase
        self._min_rate = min_rate
        self._max_rate = max_rate

    def extract(self, markup: str) -> Decimal | None:
        """Return the current index value, or None when it cannot be found."""
        soup = BeautifulSoup(markup, "html.parser")
        anchors = soup.find_all(
            string=lambda s: s is not None and self._anchor_phrase in s
        )
        if not anchors:
            logger.debug("anchor_phrase_not_found", anchor=self._anchor_phrase)
            return None

        for node in anchors:
            rate = self._rate_near(node)
            if rate is None:
                continue
            if not self.is_valid(rate):
                logger.debug("rate_out_of_range", rate=str(rate))
                return None
            return rate

        return None

    def is_valid(self, rate: Decimal) -> bool:
        return self._min_rate < rate < self._max_rate

    def _rate_near(self, node: NavigableString) -> Decimal | None:
        """Search the anchor text node, then its enclosing elements, for a price."""
        rate = parse_currency(str(node))
        if rate is not None:
            return rate

        element: Tag | None = node.parent
        for _ in range(_MAX_ANCESTOR_DEPTH):
            if element is None or element.name == "[document]":
                break
            rate = parse_currency(element.get_text())
            if rate is not None:
                return rate
            element = element.parent
        return None


def parse_currency(text: str) -> Decimal | None:
    """Parse the first ``$1,234.56``-style amount in ``text``."""
    match = CURRENCY_PATTERN.search(text)
    if match is None:
        return None
    try:
        return Decimal(match.group(1).replace(",", ""))
    except InvalidOperation:
        return None

"""Shared constants and page builders for the tracker tests."""

from datetime import datetime, timezone

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


def terminal_page(price: str | None = "$2,668.40", label: str = "Current FBX") -> str:
    """Minimal Freightos terminal page with the label and price in sibling spans."""
    price_html = f"<span class='value'>{price}</span>" if price is not None else ""
    return (
        "<html><body>"
        "<header><span>Plans from $99</span></header>"
        "<div class='index-card'>"
        f"<span class='label'>{label}</span>{price_html}"
        "</div>"
        "</body></html>"
    )


async def no_sleep(_seconds: float) -> None:
    return None

"""Custom exceptions for the FBX freight rate tracker.

Only failures that a caller must act on are raised. Scrape misses and
unreadable storage records are reported as absent values instead.
"""


class TrackerError(Exception):
    """Base exception for all tracker errors."""


class ScrapeFailedError(TrackerError):
    """Raised when an on-demand scrape produced no rate for any route."""


class NoDataError(TrackerError):
    """Raised when no snapshot has been persisted yet."""


class MissingRateDataError(TrackerError):
    """Raised when the current snapshot lacks one of the two route rates."""

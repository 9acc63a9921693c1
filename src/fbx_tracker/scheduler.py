"""Recurring scrape trigger aligned to the UTC wall clock.

With the default 6-hour interval runs fire at 00:00, 06:00, 12:00 and
18:00 UTC, matching a ``0 */6 * * *`` cron entry. The scheduler owns one
asyncio task with an explicit start/stop lifecycle; nothing runs until
start() is called.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fbx_tracker.logging import get_logger

logger = get_logger(__name__)


def seconds_until_next_run(now: datetime, interval_hours: int) -> float:
    """Seconds from ``now`` until the next UTC hour boundary divisible by interval_hours.

    A ``now`` exactly on a boundary schedules the following boundary, so a
    run that finishes instantly is never repeated within the same slot.
    """
    if interval_hours < 1:
        raise ValueError("interval_hours must be at least 1")
    now = now.astimezone(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = now - midnight
    interval = timedelta(hours=interval_hours)
    slots_passed = elapsed // interval
    next_run = midnight + interval * (slots_passed + 1)
    # Intervals that do not divide 24 restart at midnight.
    next_midnight = midnight + timedelta(days=1)
    if next_run > next_midnight:
        next_run = next_midnight
    return (next_run - now).total_seconds()


class ScrapeScheduler:
    """Invokes ``job`` on a fixed wall-clock cadence until stopped.

    Args:
        job: Coroutine function to run each slot. Exceptions are logged
            and the schedule continues.
        interval_hours: Cadence in hours (default 6).
        clock: Returns the current UTC time (injectable for tests).
        sleep: Awaitable sleep (injectable so tests never wait on real timers).
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        interval_hours: int = 6,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._job = job
        self._interval_hours = interval_hours
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._runs = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def runs(self) -> int:
        """Number of completed job invocations (successful or not)."""
        return self._runs

    def next_run_in(self) -> float:
        return seconds_until_next_run(self._clock(), self._interval_hours)

    async def start(self) -> None:
        """Begin the recurring schedule in the background."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "scheduler_started",
            interval_hours=self._interval_hours,
            next_run_in_seconds=round(self.next_run_in()),
        )

    async def stop(self) -> None:
        """Stop the schedule, cancelling any pending wait."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler_stopped")

    async def _loop(self) -> None:
        while self._running:
            await self._sleep(self.next_run_in())
            if not self._running:
                break
            logger.info("scheduled_scrape_triggered")
            try:
                await self._job()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("scheduled_scrape_error", exc_info=True)
            finally:
                self._runs += 1

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import TYPE_CHECKING

from outage_core.circuit_breaker.breaker import CircuitBreaker
from outage_core.circuit_breaker.exceptions import InvalidBreakerConfigError
from outage_core.logging import BreakerLogger, get_logger, log_info

if TYPE_CHECKING:
    from outage_core.settings import BreakerSettings


class RecoveryWatcher:
    """Background task that drives outage recovery without caller traffic.

    Breakers recover lazily on the next status check. A watcher performs that
    check every ``interval`` seconds so an idle breaker closes close to its
    outage timeout.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        *,
        interval: float,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        logger: BreakerLogger | None = None,
    ) -> None:
        """Create a watcher for one breaker.

        Args:
            breaker: Breaker whose outage is polled.
            interval: Seconds between status checks.
            sleep: Awaitable sleep override. Defaults to a sleep that returns
                early once ``close()`` is called.
            logger: Structured or stdlib logger for lifecycle events.
        """
        if not interval > 0:
            raise InvalidBreakerConfigError("interval", interval, "must be > 0")
        self._breaker = breaker
        self._interval = interval
        self._stop_event = asyncio.Event()
        self._sleep = self._wait_for_next_check if sleep is None else sleep
        self._logger = get_logger(__name__) if logger is None else logger
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start polling. Calling it while already running is a no-op."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(
            self._run(),
            name=f"circuit_breaker_recovery:{self._breaker.name}",
        )
        log_info(
            self._logger,
            "circuit_breaker.recovery_watcher_started",
            breaker=self._breaker.name,
            interval=self._interval,
        )

    async def close(self) -> None:
        """Stop polling and wait for the task to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        self._stop_event.set()
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        log_info(
            self._logger,
            "circuit_breaker.recovery_watcher_stopped",
            breaker=self._breaker.name,
        )

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            self._breaker.is_outage_in_progress()
            await self._sleep(self._interval)

    async def _wait_for_next_check(self, delay: float) -> None:
        # close() sets the stop event, which ends the wait before the delay.
        if self._stop_event.is_set():
            return
        with suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)


def build_recovery_watcher(
    breaker: CircuitBreaker,
    settings: BreakerSettings,
    *,
    logger: BreakerLogger | None = None,
) -> RecoveryWatcher | None:
    """Return a watcher when scheduled recovery is configured, else ``None``."""
    interval = settings.recovery_check_interval_seconds
    if interval is None:
        return None
    return RecoveryWatcher(breaker, interval=interval, logger=logger)

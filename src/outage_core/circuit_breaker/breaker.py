"""Core circuit breaker implementation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from outage_core.circuit_breaker.atomic import AtomicReference
from outage_core.circuit_breaker.exceptions import InvalidBreakerConfigError
from outage_core.circuit_breaker.state import CircuitState, FailureWindow
from outage_core.logging import BreakerLogger, get_logger, log_info, log_warning

if TYPE_CHECKING:
    from outage_core.settings import BreakerSettings


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _require_positive(field: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidBreakerConfigError(field, value, "must be a number")
    if math.isnan(value) or value <= 0:
        raise InvalidBreakerConfigError(field, value, "must be > 0")


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_attempts_threshold: Failures within one monitored window
            required to trip the breaker.
        outage_timeout: Seconds the breaker stays ``OPEN`` before the next
            status check may close it.
        monitored_time_frame: Seconds over which failures are counted before
            the window restarts. ``math.inf`` counts failures without windowing.
    """

    failure_attempts_threshold: int = 5
    outage_timeout: float = 300.0
    monitored_time_frame: float = 60.0

    def __post_init__(self) -> None:
        threshold = self.failure_attempts_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidBreakerConfigError(
                "failure_attempts_threshold", threshold, "must be an integer"
            )
        if threshold < 1:
            raise InvalidBreakerConfigError(
                "failure_attempts_threshold", threshold, "must be >= 1"
            )
        _require_positive("outage_timeout", self.outage_timeout)
        _require_positive("monitored_time_frame", self.monitored_time_frame)


class CircuitBreaker:
    """Concurrency-safe outage guard for one protected resource.

    The breaker never performs the protected call. Callers consult it first
    and report failures back::

        if not breaker.is_outage_in_progress():
            try:
                result = call_protected_resource()
            except ResourceError:
                breaker.request_outage()
                result = fallback()
        else:
            result = fallback()

    All state lives in one immutable ``FailureWindow`` that is replaced via
    compare-and-set, so readers never observe a half-applied transition and
    each automatic transition is performed by exactly one racing caller.
    Recovery is lazy: an expired outage is closed by the next status check.
    """

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        logger: BreakerLogger | None = None,
    ) -> None:
        """Build a circuit breaker in ``CLOSED`` state with an empty window.

        Args:
            name: Breaker name used in log events.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            logger: Structured or stdlib logger for transition events.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._logger = get_logger(__name__) if logger is None else logger
        self._window = AtomicReference(FailureWindow.closed(_utcnow()))

    @classmethod
    def from_settings(
        cls,
        settings: BreakerSettings,
        *,
        logger: BreakerLogger | None = None,
    ) -> CircuitBreaker:
        """Build a breaker from environment-driven settings."""
        return cls(settings.name, config=settings.to_config(), logger=logger)

    @property
    def state(self) -> CircuitState:
        """Current state, without triggering auto-recovery."""
        return self._window.get().state

    def snapshot(self) -> FailureWindow:
        """Return the current immutable failure window."""
        return self._window.get()

    def is_outage_in_progress(self) -> bool:
        """Report whether calls should be rejected right now.

        Closes an ``OPEN`` breaker first when its outage timeout has elapsed.
        """
        now = _utcnow()
        while True:
            current = self._window.get()
            if current.state != CircuitState.OPEN:
                return False
            if not self._is_outage_timeout_expired(current, now):
                return True
            if self._window.compare_and_set(current, FailureWindow.closed(now)):
                self._log_closed(current, now)
                return False

    def request_outage(self) -> None:
        """Record a failure of the protected resource.

        Restarts the monitored window when it has expired, otherwise counts
        the failure in the current one. Trips the breaker when a ``CLOSED``
        window reaches the threshold. Reports while ``OPEN`` only count.
        """
        now = _utcnow()
        while True:
            current = self._window.get()
            window_expired = self._is_monitored_time_frame_expired(current, now)
            if window_expired:
                updated = current.restarted(now)
            else:
                updated = current.increment()

            tripped = (
                updated.state == CircuitState.CLOSED
                and updated.failure_attempts >= self.config.failure_attempts_threshold
            )
            if tripped:
                updated = updated.opened(now)

            if self._window.compare_and_set(current, updated):
                break

        if window_expired:
            log_info(
                self._logger, "circuit_breaker.window_restarted", breaker=self.name
            )
        if tripped:
            log_info(
                self._logger,
                "circuit_breaker.opened",
                breaker=self.name,
                failure_attempts=updated.failure_attempts,
                threshold=self.config.failure_attempts_threshold,
            )

    def open_outage(self) -> bool:
        """Force the breaker ``OPEN``, preserving the failure count.

        Returns:
            ``True`` if this call opened the breaker, ``False`` if it was
            already open.
        """
        while True:
            current = self._window.get()
            if current.state == CircuitState.OPEN:
                return False
            if self._window.compare_and_set(current, current.opened(_utcnow())):
                log_warning(
                    self._logger,
                    "circuit_breaker.forced_open",
                    breaker=self.name,
                    failure_attempts=current.failure_attempts,
                )
                return True

    def close_outage(self) -> bool:
        """Force the breaker ``CLOSED`` with a fresh failure window.

        Returns:
            ``True`` if this call closed the breaker, ``False`` if it was
            already closed.
        """
        while True:
            current = self._window.get()
            if current.state == CircuitState.CLOSED:
                return False
            if self._window.compare_and_set(current, FailureWindow.closed(_utcnow())):
                log_warning(
                    self._logger, "circuit_breaker.forced_closed", breaker=self.name
                )
                return True

    def _is_outage_timeout_expired(self, window: FailureWindow, now: datetime) -> bool:
        opened_at = window.outage_start_time
        if opened_at is None:
            return False
        return (now - opened_at).total_seconds() > self.config.outage_timeout

    def _is_monitored_time_frame_expired(
        self, window: FailureWindow, now: datetime
    ) -> bool:
        elapsed = (now - window.monitoring_start_time).total_seconds()
        return elapsed > self.config.monitored_time_frame

    def _log_closed(self, window: FailureWindow, now: datetime) -> None:
        opened_at = window.outage_start_time
        if opened_at is None:
            opened_at = now
        log_info(
            self._logger,
            "circuit_breaker.closed",
            breaker=self.name,
            outage_seconds=(now - opened_at).total_seconds(),
        )

"""Circuit breaker state primitives."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True, slots=True)
class FailureWindow:
    """Immutable failure-accounting snapshot swapped as one unit.

    Attributes:
        state: Breaker state this window belongs to.
        failure_attempts: Failures recorded within the current monitored window.
        monitoring_start_time: When the current monitored window began.
        outage_start_time: When the breaker last entered ``OPEN``; ``None``
            while ``CLOSED``.
    """

    state: CircuitState
    failure_attempts: int
    monitoring_start_time: datetime
    outage_start_time: datetime | None

    @classmethod
    def closed(cls, now: datetime) -> "FailureWindow":
        """Return an empty ``CLOSED`` window starting at ``now``."""
        return cls(
            state=CircuitState.CLOSED,
            failure_attempts=0,
            monitoring_start_time=now,
            outage_start_time=None,
        )

    def increment(self) -> "FailureWindow":
        """Return a copy with one more failure recorded."""
        return replace(self, failure_attempts=self.failure_attempts + 1)

    def restarted(self, now: datetime) -> "FailureWindow":
        """Return a new monitored window seeded with the failure being reported.

        State and outage start are carried over so a restart while ``OPEN``
        never moves the outage start.
        """
        return replace(self, failure_attempts=1, monitoring_start_time=now)

    def opened(self, now: datetime) -> "FailureWindow":
        """Return an ``OPEN`` copy stamped with ``now`` as the outage start."""
        return replace(self, state=CircuitState.OPEN, outage_start_time=now)

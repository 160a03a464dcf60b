"""Thread-safe, time-windowed circuit breaker.

The breaker guards calls to a failing resource without performing them.
Callers ask ``is_outage_in_progress()`` before a call and report failures via
``request_outage()``.

Key behavior notes:
  - Failures are counted within a monitored time frame. Once the frame
    elapses, the next report starts a new window at one failure.
  - Reaching the threshold while ``CLOSED`` trips the breaker ``OPEN``. Further
    reports while ``OPEN`` are counted but never move the outage start.
  - Recovery is lazy: the first status check after the outage timeout closes
    the breaker. ``RecoveryWatcher`` performs that check on a schedule.
  - State is one immutable ``FailureWindow`` swapped by compare-and-set, so
    each automatic transition happens exactly once under contention.
"""

from outage_core.circuit_breaker.atomic import AtomicReference
from outage_core.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from outage_core.circuit_breaker.exceptions import (
    CircuitBreakerError,
    InvalidBreakerConfigError,
)
from outage_core.circuit_breaker.recovery import (
    RecoveryWatcher,
    build_recovery_watcher,
)
from outage_core.circuit_breaker.state import CircuitState, FailureWindow

__all__ = [
    "AtomicReference",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitState",
    "FailureWindow",
    "InvalidBreakerConfigError",
    "RecoveryWatcher",
    "build_recovery_watcher",
]

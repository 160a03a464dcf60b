from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest

from outage_core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from tests.outage_core.support.fakes import AtomicCounter, FakeClock, FakeLogger


def _run_together(workers: int, task: Callable[[], object]) -> list[object]:
    barrier = threading.Barrier(workers)

    def _gated() -> object:
        barrier.wait()
        return task()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_gated) for _ in range(workers)]
        return [future.result() for future in futures]


@pytest.mark.parametrize("workers", [2, 8, 32])
def test_racing_reports_at_threshold_trip_exactly_once(workers: int) -> None:
    for _ in range(20):
        logger = FakeLogger()
        breaker = CircuitBreaker(
            "svc",
            config=CircuitBreakerConfig(failure_attempts_threshold=workers),
            logger=logger,
        )

        _run_together(workers, breaker.request_outage)

        snapshot = breaker.snapshot()
        assert logger.count("circuit_breaker.opened") == 1
        assert snapshot.state == CircuitState.OPEN
        assert snapshot.failure_attempts == workers
        assert snapshot.outage_start_time is not None


def test_racing_status_checks_recover_exactly_once(fake_clock: FakeClock) -> None:
    workers = 16
    for _ in range(20):
        logger = FakeLogger()
        breaker = CircuitBreaker(
            "svc",
            config=CircuitBreakerConfig(
                failure_attempts_threshold=1, outage_timeout=10.0
            ),
            logger=logger,
        )
        breaker.request_outage()
        fake_clock.advance(10.5)

        results = _run_together(workers, breaker.is_outage_in_progress)

        assert results == [False] * workers
        assert logger.count("circuit_breaker.closed") == 1
        assert breaker.snapshot().failure_attempts == 0


def test_readers_never_observe_half_applied_transitions() -> None:
    breaker = CircuitBreaker(
        "svc",
        config=CircuitBreakerConfig(
            failure_attempts_threshold=3,
            outage_timeout=0.001,
            monitored_time_frame=0.005,
        ),
        logger=FakeLogger(),
    )
    stop = threading.Event()
    violations: list[str] = []
    observed = AtomicCounter()

    def _writer() -> None:
        while not stop.is_set():
            if not breaker.is_outage_in_progress():
                breaker.request_outage()

    def _reader() -> None:
        while not stop.is_set():
            snapshot = breaker.snapshot()
            observed.increment_and_get()
            if snapshot.state == CircuitState.OPEN:
                if snapshot.outage_start_time is None:
                    violations.append("open without outage start")
            elif snapshot.outage_start_time is not None:
                violations.append("closed with outage start")
            if snapshot.failure_attempts < 0:
                violations.append("negative failure count")

    threads = [threading.Thread(target=_writer) for _ in range(4)]
    threads += [threading.Thread(target=_reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    stop.wait(0.3)
    stop.set()
    for thread in threads:
        thread.join()

    assert violations == []
    assert observed.value > 0


def test_workers_calling_failing_service_are_short_circuited() -> None:
    threshold = 5
    workers = 3
    calls_per_worker = 20
    breaker = CircuitBreaker(
        "unreliable",
        config=CircuitBreakerConfig(
            failure_attempts_threshold=threshold, outage_timeout=300.0
        ),
        logger=FakeLogger(),
    )
    service_calls = AtomicCounter()
    fallbacks = AtomicCounter()

    def _call_service() -> None:
        service_calls.increment_and_get()
        raise RuntimeError("Failed to call the service")

    def _worker() -> None:
        for _ in range(calls_per_worker):
            if not breaker.is_outage_in_progress():
                try:
                    _call_service()
                except RuntimeError:
                    breaker.request_outage()
                    fallbacks.increment_and_get()
            else:
                fallbacks.increment_and_get()

    _run_together(workers, _worker)

    assert threshold <= service_calls.value <= threshold + workers - 1
    assert fallbacks.value == workers * calls_per_worker
    assert breaker.snapshot().failure_attempts == service_calls.value
    assert breaker.is_outage_in_progress() is True

import logging
import threading
import time

import pytest

from job_ingest.governor import HOUR_S, RateGovernor


def _governor(clock, interval: float = 2.0, cap: int = 100) -> RateGovernor:
    return RateGovernor("arbeitnow", interval, cap, clock=clock, sleep=clock.sleep)


def test_first_request_is_not_delayed(clock) -> None:
    gov = _governor(clock)
    assert gov.throttle() == 0.0
    assert clock.sleeps == []


def test_min_interval_between_dispatches(clock) -> None:
    gov = _governor(clock, interval=2.0)
    times = []
    for _ in range(4):
        gov.throttle()
        times.append(clock())
        clock.advance(0.5)

    gaps = [b - a for a, b in zip(times, times[1:])]
    assert all(gap >= 2.0 for gap in gaps)


def test_hourly_cap_blocks_until_oldest_leaves_window(clock, caplog) -> None:
    gov = _governor(clock, interval=0.0, cap=3)
    start = clock()
    for _ in range(3):
        gov.throttle()

    with caplog.at_level(logging.INFO, logger="job_ingest.governor"):
        waited = gov.throttle()

    assert waited == pytest.approx(HOUR_S)
    assert clock() == pytest.approx(start + HOUR_S)
    assert "hourly budget" in caplog.text


def test_never_more_than_cap_in_any_rolling_hour(clock) -> None:
    cap = 5
    gov = _governor(clock, interval=30.0, cap=cap)
    dispatched = []
    for _ in range(23):
        gov.throttle()
        dispatched.append(clock())
        clock.advance(7.0)

    for t in dispatched:
        in_window = [d for d in dispatched if t <= d < t + HOUR_S]
        assert len(in_window) <= cap


def test_success_counter_is_separate_from_dispatch_count(clock) -> None:
    gov = _governor(clock, interval=0.0)
    gov.throttle()
    gov.throttle()
    gov.record_success()

    status = gov.status()
    assert status["total_requests"] == 2
    assert status["successful_requests"] == 1
    assert status["requests_this_hour"] == 2
    assert status["hourly_budget_remaining"] == 98
    assert status["last_request_at"] == clock()


def test_status_drops_requests_older_than_an_hour(clock) -> None:
    gov = _governor(clock, interval=0.0, cap=10)
    gov.throttle()
    clock.advance(HOUR_S + 1)
    assert gov.status()["requests_this_hour"] == 0
    assert gov.status()["hourly_budget_remaining"] == 10


def test_backoff_sleeps_and_warns(clock, caplog) -> None:
    gov = _governor(clock)
    with caplog.at_level(logging.WARNING, logger="job_ingest.governor"):
        gov.backoff(5.0, "HTTP 429")
    assert clock.sleeps == [5.0]
    assert "HTTP 429" in caplog.text


def test_governors_do_not_share_budgets(clock) -> None:
    a = RateGovernor("arbeitnow", 2.0, 100, clock=clock, sleep=clock.sleep)
    b = RateGovernor("remotive", 3.0, 100, clock=clock, sleep=clock.sleep)
    a.throttle()
    a.throttle()
    assert a.status()["total_requests"] == 2
    assert b.status()["total_requests"] == 0
    assert b.throttle() == 0.0


def test_cap_must_be_positive(clock) -> None:
    with pytest.raises(ValueError):
        RateGovernor("x", 1.0, 0, clock=clock, sleep=clock.sleep)


INTERVAL = 0.05


def _hammer(govs, calls_each: int) -> float:
    """Throttle every governor from its own threads, all released together; returns the start time."""
    threads = []
    barrier = threading.Barrier(sum(n for _, n in govs) + 1)

    def worker(gov):
        barrier.wait()
        for _ in range(calls_each):
            gov.throttle()

    for gov, n in govs:
        threads.extend(threading.Thread(target=worker, args=(gov,)) for _ in range(n))
    for t in threads:
        t.start()
    barrier.wait()
    start = time.monotonic()
    for t in threads:
        t.join(timeout=10)
    return start


def test_concurrent_callers_are_serialized() -> None:
    gov = RateGovernor("arbeitnow", INTERVAL, 100, clock=time.monotonic)

    _hammer([(gov, 4)], calls_each=2)

    times = sorted(gov.budget.dispatched)
    assert len(times) == gov.budget.total_requests == 8
    gaps = [b - a for a, b in zip(times, times[1:])]
    assert min(gaps) >= INTERVAL - 1e-6


def test_concurrent_governors_do_not_delay_each_other() -> None:
    a = RateGovernor("arbeitnow", INTERVAL, 100, clock=time.monotonic)
    b = RateGovernor("remotive", INTERVAL, 100, clock=time.monotonic)

    start = _hammer([(a, 2), (b, 2)], calls_each=2)

    for gov in (a, b):
        times = sorted(gov.budget.dispatched)
        assert len(times) == 4
        # Both open immediately instead of queueing behind the other source.
        assert times[0] - start < INTERVAL
        assert min(y - x for x, y in zip(times, times[1:])) >= INTERVAL - 1e-6
    # Four dispatches per source take three intervals; sharing a lock would take seven.
    assert max(a.budget.dispatched[-1], b.budget.dispatched[-1]) - start < 6 * INTERVAL

"""Tests for the request rate gate."""

import threading
import time

import pytest

from conftest import FakeClock
from ncbi_services.ratelimit import RateGate, shared_gate


def _run_threads(target, n_threads):
    threads = [threading.Thread(target=target) for _ in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_first_wait_does_not_block():
    """Test a fresh gate lets the first caller through."""
    clock = FakeClock(start=100.0)
    gate = RateGate(3.0, clock=clock, sleep=clock.sleep)

    gate.wait()

    assert clock.sleeps == []


def test_sequential_waits_are_spaced():
    """Test consecutive waits sleep out the remaining interval."""
    clock = FakeClock()
    gate = RateGate(3.0, clock=clock, sleep=clock.sleep)

    gate.wait()
    clock.now += 1.0
    gate.wait()
    gate.wait()

    assert clock.sleeps == [pytest.approx(2.0), pytest.approx(3.0)]
    assert clock.now == pytest.approx(6.0)


def test_no_sleep_after_interval_elapsed():
    """Test a caller arriving after the interval is not delayed."""
    clock = FakeClock()
    gate = RateGate(3.0, clock=clock, sleep=clock.sleep)

    gate.wait()
    clock.now += 10.0
    gate.wait()

    assert clock.sleeps == []


def test_concurrent_callers_share_slots():
    """Test 10 threads x 10 calls claim strictly periodic slots."""
    clock = FakeClock()
    slots = []

    def sleep(seconds):
        clock.sleep(seconds)
        slots.append(clock.now)

    gate = RateGate(3.0, clock=clock, sleep=sleep)

    def worker():
        for _ in range(10):
            gate.wait()

    _run_threads(worker, 10)

    # The first call claims t=0 without sleeping; every other call sleeps
    # until the next free slot.
    returns = [0.0] + slots
    assert len(returns) == 100
    assert returns == pytest.approx([3.0 * i for i in range(100)])

    in_window = [t for t in returns if 0.0 <= t < 9.0]
    assert len(in_window) == 3


def test_concurrent_callers_real_time():
    """Test the gate holds the floor on throughput with a real clock."""
    interval = 0.02
    gate = RateGate(interval)

    def worker():
        for _ in range(3):
            gate.wait()

    start = time.monotonic()
    _run_threads(worker, 4)
    elapsed = time.monotonic() - start

    assert elapsed >= 11 * interval


def test_zero_interval_never_sleeps():
    """Test a zero interval gate is a no-op."""
    clock = FakeClock()
    gate = RateGate(0, clock=clock, sleep=clock.sleep)

    for _ in range(5):
        gate.wait()

    assert clock.sleeps == []


def test_negative_interval_rejected():
    """Test negative intervals are refused."""
    with pytest.raises(ValueError):
        RateGate(-1.0)


def test_interval_is_read_only():
    """Test the interval cannot be changed after construction."""
    gate = RateGate(1.5)
    assert gate.interval == 1.5
    with pytest.raises(AttributeError):
        gate.interval = 0.0


def test_shared_gate_is_reused():
    """Test the same service name yields the same gate."""
    first = shared_gate("test-service", 2.0)
    second = shared_gate("test-service")
    assert first is second
    assert second.interval == 2.0


def test_shared_gate_unknown_name():
    """Test looking up a gate that was never created."""
    with pytest.raises(KeyError):
        shared_gate("never-created")

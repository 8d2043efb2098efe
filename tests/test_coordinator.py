"""Tests for the coordination loop."""

from __future__ import annotations

import threading

import pytest

from core.coordinator import CoordinationLoop


def test_run_pending_runs_due_calls_in_order(loop, clock) -> None:
    ran: list[str] = []
    loop.post(lambda: ran.append("a"))
    loop.post(lambda: ran.append("b"))
    loop.post_delayed(500, lambda: ran.append("later"))

    assert loop.run_pending() == 2
    assert ran == ["a", "b"]

    clock.advance(499)
    assert loop.run_pending() == 0
    clock.advance(1)
    assert loop.run_pending() == 1
    assert ran == ["a", "b", "later"]


def test_delayed_calls_run_by_due_time(loop, clock) -> None:
    ran: list[int] = []
    loop.post_delayed(300, lambda: ran.append(300))
    loop.post_delayed(100, lambda: ran.append(100))

    clock.advance(1000)
    loop.run_pending()

    assert ran == [100, 300]


def test_cancelled_call_never_runs(loop, clock) -> None:
    ran: list[str] = []
    call = loop.post_delayed(100, lambda: ran.append("x"))

    call.cancel()
    clock.advance(200)
    loop.run_pending()

    assert ran == []
    assert loop.pending_count() == 0


def test_failing_call_does_not_stop_the_loop(loop) -> None:
    ran: list[str] = []

    def boom() -> None:
        raise RuntimeError("bad callback")

    loop.post(boom)
    loop.post(lambda: ran.append("after"))

    assert loop.run_pending() == 2
    assert ran == ["after"]


def test_thread_runs_posted_calls() -> None:
    loop = CoordinationLoop()
    done = threading.Event()
    seen: list[bool] = []
    loop.start()
    try:
        loop.post(lambda: (seen.append(loop.is_coordination_thread()), done.set()))
        assert done.wait(2.0)
    finally:
        loop.stop()

    assert seen == [True]
    assert loop.is_running() is False


def test_post_after_stop_raises() -> None:
    loop = CoordinationLoop()
    loop.start()
    loop.stop()

    with pytest.raises(RuntimeError):
        loop.post(lambda: None)

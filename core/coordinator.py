"""Single-threaded coordination loop that owns user-visible state changes."""

from __future__ import annotations

from dataclasses import dataclass, field
import heapq
import itertools
import threading
import time
from typing import Callable

from core.logging import logger


Clock = Callable[[], float]


@dataclass(order=True)
class ScheduledCall:
    """Handle for a posted callable; ``cancel`` prevents it from running."""

    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    name: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class CoordinationLoop:
    """Run posted callables one at a time on a dedicated thread.

    Background contexts never touch shared state directly; they post a
    callable here. ``run_pending`` can also be driven by hand (with an
    injected clock) when no thread is started.
    """

    def __init__(self, clock: Clock | None = None, name: str = "coordination") -> None:
        self._clock = clock or time.monotonic
        self._name = name
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._heap: list[ScheduledCall] = []
        self._seq = itertools.count()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

    def post(self, callback: Callable[[], None], *, name: str = "") -> ScheduledCall:
        return self.post_delayed(0, callback, name=name)

    def post_delayed(
        self,
        delay_ms: int,
        callback: Callable[[], None],
        *,
        name: str = "",
    ) -> ScheduledCall:
        with self._cond:
            if self._closed:
                raise RuntimeError("Coordination loop is stopped")
            call = ScheduledCall(
                due=self._clock() + max(0, delay_ms) / 1000.0,
                seq=next(self._seq),
                callback=callback,
                name=name or getattr(callback, "__name__", ""),
            )
            heapq.heappush(self._heap, call)
            self._cond.notify()
        return call

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for call in self._heap if not call.cancelled)

    def run_pending(self) -> int:
        """Run every call that is due now; return how many ran."""

        ran = 0
        while True:
            call = self._pop_due()
            if call is None:
                return ran
            self._invoke(call)
            ran += 1

    def start(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
            self._thread.start()

    def stop(self, timeout_s: float = 2.0) -> None:
        with self._cond:
            self._closed = True
            self._stop_event.set()
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=timeout_s)
            if self._thread.is_alive():
                logger.warning("[LOOP] Coordination thread did not exit within %.2fs", timeout_s)
                return
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def is_coordination_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def _pop_due(self) -> ScheduledCall | None:
        with self._lock:
            while self._heap:
                head = self._heap[0]
                if head.cancelled:
                    heapq.heappop(self._heap)
                    continue
                if head.due > self._clock():
                    return None
                return heapq.heappop(self._heap)
            return None

    def _invoke(self, call: ScheduledCall) -> None:
        try:
            call.callback()
        except Exception as exc:
            logger.exception("[LOOP] Posted call %s failed: %s", call.name or "<anonymous>", exc)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.run_pending()
            with self._cond:
                if self._stop_event.is_set():
                    break
                timeout = None
                if self._heap:
                    timeout = max(0.0, self._heap[0].due - self._clock())
                    if timeout == 0.0:
                        continue
                self._cond.wait(timeout=timeout)

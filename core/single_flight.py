"""Single-flight execution of recognition work, one worker thread per pipeline."""

from __future__ import annotations

import concurrent.futures
import threading
from typing import Any, Callable

from core.logging import logger


Completion = Callable[[Any, "BaseException | None"], None]
Dispatcher = Callable[[Callable[[], None]], None]


class SingleFlightWorker:
    """Run at most one unit of work at a time per pipeline.

    Each pipeline gets its own single-thread executor. A pipeline stays busy
    until the completion callback has run; when a ``dispatch`` function is
    supplied the callback is handed to it (normally the coordination loop)
    and the busy flag is cleared only after that callback finishes.
    """

    def __init__(self, dispatch: Dispatcher | None = None) -> None:
        self._dispatch = dispatch
        self._lock = threading.Lock()
        self._busy: set[str] = set()
        self._executors: dict[str, concurrent.futures.ThreadPoolExecutor] = {}
        self._closed = False

    def is_busy(self, pipeline_id: str) -> bool:
        with self._lock:
            return pipeline_id in self._busy

    def submit(
        self,
        pipeline_id: str,
        work: Callable[[], Any],
        on_complete: Completion | None = None,
    ) -> bool:
        """Start ``work`` unless the pipeline already has work in flight.

        Returns False when the submission was dropped; the caller keeps
        ownership of (and must release) whatever the work referenced.
        """

        with self._lock:
            if self._closed or pipeline_id in self._busy:
                return False
            self._busy.add(pipeline_id)
            executor = self._executors.get(pipeline_id)
            if executor is None:
                executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=1,
                    thread_name_prefix=f"pipeline-{pipeline_id}",
                )
                self._executors[pipeline_id] = executor

        try:
            executor.submit(self._run, pipeline_id, work, on_complete)
        except RuntimeError:
            logger.exception("[WORKER] Failed to schedule work for %s", pipeline_id)
            self._release(pipeline_id)
            return False
        return True

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            self._closed = True
            executors = list(self._executors.values())
            self._executors.clear()
        for executor in executors:
            executor.shutdown(wait=wait)

    def _run(self, pipeline_id: str, work: Callable[[], Any], on_complete: Completion | None) -> None:
        result: Any = None
        error: BaseException | None = None
        handed_off = False
        try:
            try:
                result = work()
            except Exception as exc:
                error = exc
                logger.exception("[WORKER] Work failed on pipeline %s: %s", pipeline_id, exc)

            if on_complete is None:
                return

            finish = self._finisher(pipeline_id, on_complete, result, error)
            if self._dispatch is None:
                handed_off = True
                finish()
                return
            try:
                self._dispatch(finish)
                handed_off = True
            except Exception:
                logger.exception("[WORKER] Could not dispatch completion for %s", pipeline_id)
        finally:
            if not handed_off:
                self._release(pipeline_id)

    def _finisher(
        self,
        pipeline_id: str,
        on_complete: Completion,
        result: Any,
        error: BaseException | None,
    ) -> Callable[[], None]:
        def _finish() -> None:
            try:
                on_complete(result, error)
            except Exception:
                logger.exception("[WORKER] Completion handler failed on pipeline %s", pipeline_id)
            finally:
                self._release(pipeline_id)

        return _finish

    def _release(self, pipeline_id: str) -> None:
        with self._lock:
            self._busy.discard(pipeline_id)

"""Per-pipeline admission gate with latest-wins backpressure."""

from __future__ import annotations

import threading
import time
from typing import Callable, Mapping

from core.logging import logger


AdmissionPolicy = Callable[[str], bool]


class RateGate:
    """Admit at most one unit of work per interval window for each pipeline.

    This is a bucket of size one with continuous refill: nothing is buffered,
    a refused caller drops its frame. An optional admission policy closes the
    gate for whole pipelines (for example while an emergency is active).
    """

    def __init__(
        self,
        default_interval_ms: int = 1000,
        intervals_ms: Mapping[str, int] | None = None,
        *,
        admission_policy: AdmissionPolicy | None = None,
    ) -> None:
        self._default_interval_ms = max(0, int(default_interval_ms))
        self._intervals_ms: dict[str, int] = {
            key: max(0, int(value)) for key, value in (intervals_ms or {}).items()
        }
        self._admission_policy = admission_policy
        self._last_admitted_ms: dict[str, int] = {}
        self._lock = threading.Lock()

    def set_admission_policy(self, policy: AdmissionPolicy | None) -> None:
        self._admission_policy = policy

    def set_interval(self, pipeline_id: str, interval_ms: int) -> None:
        with self._lock:
            self._intervals_ms[pipeline_id] = max(0, int(interval_ms))

    def interval_ms(self, pipeline_id: str) -> int:
        return self._intervals_ms.get(pipeline_id, self._default_interval_ms)

    def try_admit(self, pipeline_id: str, now_ms: int | None = None) -> bool:
        """Return True when ``pipeline_id`` may start a unit of work now."""

        if now_ms is None:
            now_ms = int(time.monotonic() * 1000)

        policy = self._admission_policy
        if policy is not None and not policy(pipeline_id):
            return False

        with self._lock:
            last_ms = self._last_admitted_ms.get(pipeline_id)
            if last_ms is not None and (now_ms - last_ms) < self.interval_ms(pipeline_id):
                return False
            self._last_admitted_ms[pipeline_id] = now_ms

        logger.debug("[GATE] admitted pipeline=%s at %sms", pipeline_id, now_ms)
        return True

    def reset(self, pipeline_id: str | None = None) -> None:
        """Forget admission history so the next frame is admitted immediately."""

        with self._lock:
            if pipeline_id is None:
                self._last_admitted_ms.clear()
            else:
                self._last_admitted_ms.pop(pipeline_id, None)

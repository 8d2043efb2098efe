"""Race two OCR engines against the same image and keep one result."""

from __future__ import annotations

import concurrent.futures
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from core.logging import logger


class ScriptEngine(str, Enum):
    PRIMARY_SCRIPT = "primary"
    SECONDARY_SCRIPT = "secondary"


class TextEngine(Protocol):
    def recognize_text(self, image: Any, engine_kind: ScriptEngine) -> str:
        ...


@dataclass(frozen=True)
class RecognizedText:
    text: str
    source_engine: ScriptEngine


@dataclass(frozen=True)
class RaceOutcome:
    """Winning text (if any) plus how many engines failed or timed out."""

    text: RecognizedText | None
    failures: int = 0
    attempted: int = 2

    @property
    def all_failed(self) -> bool:
        return self.attempted > 0 and self.failures >= self.attempted


_ENGINE_ORDER = (ScriptEngine.PRIMARY_SCRIPT, ScriptEngine.SECONDARY_SCRIPT)


class DualEngineRace:
    """Run the primary and secondary script engines concurrently.

    A non-empty secondary result wins, then a non-empty primary result. An
    engine that raises or misses the deadline counts as empty, and an engine
    still working on an earlier image is skipped. The wait only blocks the
    calling thread, which is the text pipeline's worker.
    """

    def __init__(self, engine: TextEngine, default_timeout_ms: int = 3000) -> None:
        self.engine = engine
        self.default_timeout_ms = default_timeout_ms
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(_ENGINE_ORDER), thread_name_prefix="ocr-race"
        )
        self._lock = threading.Lock()
        self._in_flight: dict[ScriptEngine, concurrent.futures.Future] = {}

    def resolve(self, image: Any, timeout_ms: int | None = None) -> RecognizedText | None:
        return self.resolve_detailed(image, timeout_ms).text

    def resolve_detailed(self, image: Any, timeout_ms: int | None = None) -> RaceOutcome:
        timeout_s = max(0, self.default_timeout_ms if timeout_ms is None else timeout_ms) / 1000.0
        texts = {kind: "" for kind in _ENGINE_ORDER}
        failures = 0
        futures: dict[ScriptEngine, concurrent.futures.Future] = {}
        with self._lock:
            for kind in _ENGINE_ORDER:
                previous = self._in_flight.get(kind)
                if previous is not None and not previous.done():
                    logger.warning("[RACE] %s engine still busy with an earlier image", kind.value)
                    failures += 1
                    continue
                try:
                    future = self._executor.submit(self.engine.recognize_text, image, kind)
                except RuntimeError as exc:
                    logger.error("[RACE] %s engine not started: %s", kind.value, exc)
                    failures += 1
                    continue
                self._in_flight[kind] = future
                futures[kind] = future

        if futures:
            concurrent.futures.wait(list(futures.values()), timeout=timeout_s)
        for kind, future in futures.items():
            if not future.done():
                logger.warning("[RACE] %s engine missed the %.0fms deadline", kind.value, timeout_s * 1000)
                failures += 1
                continue
            try:
                texts[kind] = (future.result() or "").strip()
            except Exception as exc:
                logger.error("[RACE] %s engine failed: %s", kind.value, exc)
                failures += 1

        winner: RecognizedText | None = None
        if texts[ScriptEngine.SECONDARY_SCRIPT]:
            winner = RecognizedText(texts[ScriptEngine.SECONDARY_SCRIPT], ScriptEngine.SECONDARY_SCRIPT)
        elif texts[ScriptEngine.PRIMARY_SCRIPT]:
            winner = RecognizedText(texts[ScriptEngine.PRIMARY_SCRIPT], ScriptEngine.PRIMARY_SCRIPT)

        logger.debug(
            "[RACE] resolved source=%s failures=%d",
            winner.source_engine.value if winner else "empty",
            failures,
        )
        return RaceOutcome(text=winner, failures=failures, attempted=len(_ENGINE_ORDER))

    def shutdown(self) -> None:
        """Stop accepting work; a running engine call finishes on its own."""

        self._executor.shutdown(wait=False, cancel_futures=True)

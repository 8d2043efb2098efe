"""Looping two-tone siren playback."""

from __future__ import annotations

import importlib
import importlib.util
import threading
from typing import Any

from core.logging import logger


CHANNELS = 1
SAMPLE_RATE = 22050
CHUNK_FRAMES = 2048


def _require_numpy() -> Any:
    if importlib.util.find_spec("numpy") is None:
        raise RuntimeError("NumPy is required for siren synthesis")
    return importlib.import_module("numpy")


def build_siren_waveform(
    sample_rate: int = SAMPLE_RATE,
    low_hz: float = 650.0,
    high_hz: float = 1000.0,
    tone_s: float = 0.45,
    volume: float = 0.8,
) -> bytes:
    """Return one low/high siren period as 16-bit mono PCM."""

    np = _require_numpy()
    samples = int(sample_rate * tone_s)
    t = np.arange(samples, dtype=np.float32) / float(sample_rate)
    low = np.sin(2.0 * np.pi * low_hz * t)
    high = np.sin(2.0 * np.pi * high_hz * t)
    wave = np.concatenate([low, high]) * max(0.0, min(1.0, volume))
    return (wave * 32767.0).astype(np.int16).tobytes()


class SirenPlayer:
    """Loop a synthesized siren on a PyAudio output stream until stopped."""

    def __init__(self, output_device_index: int | None = None, volume: float = 0.8) -> None:
        if importlib.util.find_spec("pyaudio") is None:
            raise RuntimeError("PyAudio is required for SirenPlayer")
        self._pyaudio = importlib.import_module("pyaudio")
        self._output_device_index = output_device_index
        self._waveform = build_siren_waveform(volume=volume)
        self._p: Any = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._t: threading.Thread | None = None

    @property
    def is_playing(self) -> bool:
        return self._t is not None and self._t.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_playing:
                return
            self._stop.clear()
            self._t = threading.Thread(target=self._worker, name="siren", daemon=True)
            self._t.start()
        logger.info("[SIREN] Siren started")

    def stop(self) -> None:
        with self._lock:
            thread = self._t
            self._stop.set()
        if thread is not None:
            thread.join(timeout=1.0)
        with self._lock:
            self._t = None
        logger.info("[SIREN] Siren stopped")

    def close(self) -> None:
        self.stop()
        if self._p is not None:
            self._p.terminate()
            self._p = None

    def _worker(self) -> None:
        stream = None
        try:
            if self._p is None:
                self._p = self._pyaudio.PyAudio()
            stream = self._p.open(
                format=self._pyaudio.paInt16,
                channels=CHANNELS,
                rate=SAMPLE_RATE,
                output=True,
                output_device_index=self._output_device_index,
                frames_per_buffer=CHUNK_FRAMES,
            )
            chunk_bytes = CHUNK_FRAMES * 2
            while not self._stop.is_set():
                for i in range(0, len(self._waveform), chunk_bytes):
                    if self._stop.is_set():
                        break
                    stream.write(self._waveform[i : i + chunk_bytes])
        except Exception:
            logger.exception("[SIREN] Siren output worker crashed")
        finally:
            if stream is not None:
                try:
                    stream.stop_stream()
                    stream.close()
                except Exception as exc:
                    logger.error("[SIREN] Failed to close output stream: %s", exc)

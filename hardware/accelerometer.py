"""ICM20948 accelerometer that streams motion samples to a callback."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
import threading
import time
from typing import Any, Callable

from config import load_section
from core.logging import logger
from hardware.camera_controller import millis
from services.emergency_trigger import MotionSample


I2C_ADD_ICM20948 = 0x68
REG_ADD_WIA = 0x00
REG_VAL_WIA = 0xEA
REG_ADD_PWR_MGMT_1 = 0x06
REG_VAL_ALL_RGE_RESET = 0x80
REG_VAL_RUN_MODE = 0x01
REG_ADD_ACCEL_XOUT_H = 0x2D
REG_ADD_REG_BANK_SEL = 0x7F
REG_VAL_REG_BANK_0 = 0x00
REG_VAL_REG_BANK_2 = 0x20
REG_ADD_ACCEL_SMPLRT_DIV_2 = 0x11
REG_ADD_ACCEL_CONFIG = 0x14
REG_VAL_BIT_ACCEL_DLPCFG_6 = 0x30  # bit[5:3]
REG_VAL_BIT_ACCEL_FS_2g = 0x00  # bit[2:1]
REG_VAL_BIT_ACCEL_DLPF = 0x01  # bit[0]

COUNTS_PER_G = 16384.0  # +-2g full scale
STANDARD_GRAVITY = 9.80665


def _require_smbus() -> Any:
    if importlib.util.find_spec("smbus") is None:
        raise RuntimeError("smbus is required for ICM20948Accelerometer")
    return importlib.import_module("smbus")


def _signed16(high: int, low: int) -> int:
    value = (high << 8) | low
    return value - 0x10000 if value & 0x8000 else value


@dataclass(frozen=True)
class MotionSensorConfig:
    enabled: bool = True
    i2c_bus: int = 1
    address: int = I2C_ADD_ICM20948
    sample_period_ms: int = 50

    @classmethod
    def from_config(cls) -> "MotionSensorConfig":
        section = load_section("motion_sensor")
        defaults = cls()
        return cls(
            enabled=bool(section.get("enabled", defaults.enabled)),
            i2c_bus=int(section.get("i2c_bus", defaults.i2c_bus)),
            address=int(section.get("address", defaults.address)),
            sample_period_ms=int(section.get("sample_period_ms", defaults.sample_period_ms)),
        )


class ICM20948Accelerometer:
    """Singleton accelerometer with a background sampling loop."""

    _instance: "ICM20948Accelerometer | None" = None

    def __init__(self, config: MotionSensorConfig | None = None) -> None:
        if ICM20948Accelerometer._instance is not None:
            raise RuntimeError("You cannot create another ICM20948Accelerometer class")

        smbus = _require_smbus()
        self.config = config or MotionSensorConfig.from_config()
        try:
            self._bus = smbus.SMBus(self.config.i2c_bus)
            self._configure()
        except OSError as exc:
            raise RuntimeError(f"ICM20948 not reachable on i2c-{self.config.i2c_bus}: {exc}") from exc
        self._callback: Callable[[MotionSample], None] | None = None
        self._stop_event = threading.Event()
        self._loop_thread: threading.Thread | None = None
        ICM20948Accelerometer._instance = self

    @classmethod
    def get_instance(cls) -> "ICM20948Accelerometer":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _write_byte(self, register: int, value: int) -> None:
        self._bus.write_byte_data(self.config.address, register, value)

    def _configure(self) -> None:
        self._write_byte(REG_ADD_REG_BANK_SEL, REG_VAL_REG_BANK_0)
        who_am_i = self._bus.read_byte_data(self.config.address, REG_ADD_WIA)
        if who_am_i != REG_VAL_WIA:
            raise RuntimeError(f"Unexpected ICM20948 id 0x{who_am_i:02X}")
        self._write_byte(REG_ADD_PWR_MGMT_1, REG_VAL_ALL_RGE_RESET)
        time.sleep(0.1)
        self._write_byte(REG_ADD_PWR_MGMT_1, REG_VAL_RUN_MODE)
        self._write_byte(REG_ADD_REG_BANK_SEL, REG_VAL_REG_BANK_2)
        self._write_byte(REG_ADD_ACCEL_SMPLRT_DIV_2, 0x07)
        self._write_byte(
            REG_ADD_ACCEL_CONFIG,
            REG_VAL_BIT_ACCEL_DLPCFG_6 | REG_VAL_BIT_ACCEL_FS_2g | REG_VAL_BIT_ACCEL_DLPF,
        )
        self._write_byte(REG_ADD_REG_BANK_SEL, REG_VAL_REG_BANK_0)

    def read_sample(self) -> MotionSample:
        data = self._bus.read_i2c_block_data(self.config.address, REG_ADD_ACCEL_XOUT_H, 6)
        x, y, z = (
            _signed16(data[i], data[i + 1]) / COUNTS_PER_G * STANDARD_GRAVITY for i in (0, 2, 4)
        )
        return MotionSample(x, y, z, millis())

    def register(self, callback: Callable[[MotionSample], None]) -> None:
        self._callback = callback
        if self._loop_thread is None or not self._loop_thread.is_alive():
            self._stop_event.clear()
            self._loop_thread = threading.Thread(target=self._loop, name="accelerometer", daemon=True)
            self._loop_thread.start()

    def unregister(self) -> None:
        self._callback = None
        if self._loop_thread is not None:
            self._stop_event.set()
            self._loop_thread.join(timeout=1.0)
            self._loop_thread = None

    def _loop(self) -> None:
        period_s = max(self.config.sample_period_ms, 5) / 1000.0
        while not self._stop_event.is_set():
            try:
                sample = self.read_sample()
                callback = self._callback
                if callback is not None:
                    callback(sample)
            except Exception as exc:
                logger.exception("[MOTION] Error in loop (retrying): %s", exc)
            self._stop_event.wait(period_s)

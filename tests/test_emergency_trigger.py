"""Tests for shake-to-SOS detection."""

from __future__ import annotations

import pytest

from interaction.state import Mode
from services.emergency_trigger import (
    EmergencyTrigger,
    EmergencyTriggerConfig,
    MotionSample,
    compute_jerk,
)


class StubSensor:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.callback = None
        self.unregistered = 0

    def register(self, callback) -> None:
        if self.fail:
            raise RuntimeError("no accelerometer")
        self.callback = callback

    def unregister(self) -> None:
        self.unregistered += 1


def _trigger(mode: Mode = Mode.HOME, **overrides):
    fired: list[bool] = []
    config = EmergencyTriggerConfig(**{"refractory_ms": 100, **overrides})
    trigger = EmergencyTrigger(lambda: fired.append(True), lambda: mode, config=config)
    return trigger, fired


def test_compute_jerk_uses_summed_axis_change() -> None:
    previous = MotionSample(0.0, 0.0, 9.8, 0)
    current = MotionSample(1.0, 1.0, 10.8, 200)

    assert compute_jerk(previous, current) == pytest.approx(3.0 / 200 * 10000)


def test_compute_jerk_is_zero_without_elapsed_time() -> None:
    sample = MotionSample(1.0, 2.0, 3.0, 10)

    assert compute_jerk(sample, MotionSample(9.0, 9.0, 9.0, 10)) == 0.0


def test_violent_shake_fires_once() -> None:
    trigger, fired = _trigger()

    assert trigger.on_motion_sample(MotionSample(0.0, 0.0, 9.8, 0)) is False
    assert trigger.on_motion_sample(MotionSample(10.0, 0.0, 9.8, 150)) is True

    assert fired == [True]


def test_gentle_motion_does_not_fire() -> None:
    trigger, fired = _trigger()

    trigger.on_motion_sample(MotionSample(0.0, 0.0, 9.8, 0))
    trigger.on_motion_sample(MotionSample(0.01, 0.0, 9.8, 150))

    assert fired == []


def test_samples_inside_refractory_window_are_ignored() -> None:
    trigger, fired = _trigger()
    first = MotionSample(0.0, 0.0, 9.8, 0)
    trigger.on_motion_sample(first)

    assert trigger.on_motion_sample(MotionSample(50.0, 0.0, 9.8, 100)) is False
    assert trigger.previous_sample == first
    assert fired == []


def test_refractory_window_follows_last_accepted_sample() -> None:
    trigger, fired = _trigger()

    trigger.on_motion_sample(MotionSample(0.0, 0.0, 9.8, 0))
    trigger.on_motion_sample(MotionSample(10.0, 0.0, 9.8, 150))
    trigger.on_motion_sample(MotionSample(-10.0, 0.0, 9.8, 200))

    assert fired == [True]


def test_no_trigger_while_already_in_emergency() -> None:
    trigger, fired = _trigger(Mode.EMERGENCY)

    trigger.on_motion_sample(MotionSample(0.0, 0.0, 9.8, 0))

    assert trigger.on_motion_sample(MotionSample(10.0, 0.0, 9.8, 150)) is False
    assert fired == []


def test_default_window_needs_fifty_seconds() -> None:
    fired: list[bool] = []
    trigger = EmergencyTrigger(
        lambda: fired.append(True), lambda: Mode.NAVIGATION, config=EmergencyTriggerConfig()
    )

    trigger.on_motion_sample(MotionSample(0.0, 0.0, 0.0, 0))
    assert trigger.on_motion_sample(MotionSample(5000.0, 0.0, 0.0, 50000)) is False
    assert trigger.on_motion_sample(MotionSample(5000.0, 0.0, 0.0, 50001)) is True

    assert fired == [True]


def test_missing_sensor_is_reported_once() -> None:
    notices: list[bool] = []
    trigger = EmergencyTrigger(
        lambda: None,
        lambda: Mode.HOME,
        on_unavailable=lambda: notices.append(True),
        config=EmergencyTriggerConfig(),
    )

    assert trigger.register() is False
    assert trigger.register() is False
    assert notices == [True]


def test_failing_sensor_registration_is_reported() -> None:
    notices: list[bool] = []
    trigger = EmergencyTrigger(
        lambda: None,
        lambda: Mode.HOME,
        sensor=StubSensor(fail=True),
        on_unavailable=lambda: notices.append(True),
        config=EmergencyTriggerConfig(),
    )

    assert trigger.register() is False
    assert notices == [True]


def test_register_and_unregister_sensor() -> None:
    sensor = StubSensor()
    trigger = EmergencyTrigger(lambda: None, lambda: Mode.HOME, sensor=sensor, config=EmergencyTriggerConfig())

    assert trigger.register() is True
    assert sensor.callback == trigger.on_motion_sample
    trigger.unregister()

    assert sensor.unregistered == 1
    assert trigger.registered is False

"""Mode control and emergency services."""

from services.alarm import EmergencyAlarm
from services.emergency_trigger import EmergencyTrigger, MotionSample
from services.mode_controller import ModeAction, ModeController, ModeEvent, Transition, plan_transition

__all__ = [
    "EmergencyAlarm",
    "EmergencyTrigger",
    "ModeAction",
    "ModeController",
    "ModeEvent",
    "MotionSample",
    "Transition",
    "plan_transition",
]

"""Interaction package utilities."""

from interaction.commands import CommandKind, VoiceCommand, parse_command
from interaction.haptics import HapticOutput, LoggingHaptics
from interaction.listener import ListenError, SpeechToText, VoiceCommandListener
from interaction.speech import (
    SpeechArbiter,
    SpeechPriority,
    Utterance,
    UtteranceState,
    VoiceEngine,
)
from interaction.state import AssistantState, DisplayState, EmergencySource, Language, Mode

__all__ = [
    "AssistantState",
    "CommandKind",
    "DisplayState",
    "EmergencySource",
    "HapticOutput",
    "Language",
    "ListenError",
    "LoggingHaptics",
    "Mode",
    "SpeechArbiter",
    "SpeechPriority",
    "SpeechToText",
    "Utterance",
    "UtteranceState",
    "VoiceCommand",
    "VoiceCommandListener",
    "VoiceEngine",
    "parse_command",
]

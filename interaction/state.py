"""Assistant-wide state: current mode, active language and display payload."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Mode(str, Enum):
    """What the assistant is currently doing. Exactly one is active."""

    HOME = "home"
    OBJECT_DETECTION = "identify"
    TEXT_RECOGNITION = "read"
    NAVIGATION = "navigate"
    EMERGENCY = "emergency"


class Language(str, Enum):
    """Supported announcement languages, one voice channel each."""

    ENGLISH = "english"
    HINDI = "hindi"
    MARATHI = "marathi"

    @property
    def locale(self) -> str:
        return _LOCALES[self]

    @property
    def aliases(self) -> tuple[str, ...]:
        return _ALIASES[self]

    @classmethod
    def from_name(cls, name: str | None, default: "Language | None" = None) -> "Language":
        normalized = (name or "").strip().lower()
        for language in cls:
            if normalized == language.value or normalized in language.aliases:
                return language
        return default if default is not None else cls.ENGLISH


_LOCALES = {
    Language.ENGLISH: "en-US",
    Language.HINDI: "hi-IN",
    Language.MARATHI: "mr-IN",
}

_ALIASES = {
    Language.ENGLISH: ("english", "इंग्लिश", "अंग्रेजी", "इंग्रजी"),
    Language.HINDI: ("hindi", "हिंदी", "हिन्दी"),
    Language.MARATHI: ("marathi", "मराठी"),
}


class EmergencySource(str, Enum):
    """What kind of trigger put the assistant into emergency mode."""

    VOICE = "voice"
    SENSOR = "sensor"
    BUTTON = "button"


@dataclass
class AssistantState:
    """Single owned state object mutated only by the mode controller."""

    mode: Mode = Mode.HOME
    language: Language = Language.ENGLISH
    emergency_source: EmergencySource | None = None
    terminate_requested: bool = False
    started: bool = False


@dataclass(frozen=True)
class DisplayState:
    """Localized strings the host shell shows for the current state."""

    mode: Mode
    language: Language
    mode_label: str
    status_text: str
    command_hint: str

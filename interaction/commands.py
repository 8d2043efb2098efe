"""Voice command parsing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re

from interaction.state import Language


class CommandKind(str, Enum):
    NAVIGATE = "navigate"
    READ = "read"
    IDENTIFY = "identify"
    HOME = "home"
    EMERGENCY = "emergency"
    STOP = "stop"
    LANGUAGE = "language"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class VoiceCommand:
    kind: CommandKind
    transcript: str = ""
    language: Language | None = None


# Checked in this order; the first kind with a matching token wins.
_KEYWORDS: tuple[tuple[CommandKind, frozenset[str]], ...] = (
    (CommandKind.NAVIGATE, frozenset({"navigate", "navigation", "नेविगेट"})),
    (CommandKind.READ, frozenset({"read", "रीड"})),
    (CommandKind.IDENTIFY, frozenset({"identify", "आइडेंटिफाई", "आयडेंटिफाय"})),
    (CommandKind.HOME, frozenset({"home", "होम"})),
    (CommandKind.EMERGENCY, frozenset({"sos", "emergency", "help", "एसओएस"})),
    (CommandKind.STOP, frozenset({"stop", "स्टॉप"})),
)

_TOKEN_SPLIT = re.compile(r"[\s,.!?।]+")


def tokenize(transcript: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT.split((transcript or "").strip().lower()) if token]


def parse_command(transcript: str) -> VoiceCommand:
    """Map a transcript to the command it names.

    >>> parse_command("please navigate").kind
    <CommandKind.NAVIGATE: 'navigate'>
    """

    tokens = set(tokenize(transcript))
    for kind, keywords in _KEYWORDS:
        if tokens & keywords:
            return VoiceCommand(kind=kind, transcript=transcript)
    for language in Language:
        if tokens & set(language.aliases):
            return VoiceCommand(kind=CommandKind.LANGUAGE, transcript=transcript, language=language)
    return VoiceCommand(kind=CommandKind.UNRECOGNIZED, transcript=transcript)

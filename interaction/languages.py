"""Per-language phrase templates for everything the assistant says or shows.

Phrases are rendered from whole templates for the target language; English
text is never rewritten word by word into another language.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from interaction.state import DisplayState, Language, Mode


class Phrase(str, Enum):
    WELCOME = "welcome"
    NAVIGATION_STARTED = "navigation_started"
    READING_STARTED = "reading_started"
    IDENTIFY_STARTED = "identify_started"
    HOME_RETURNED = "home_returned"
    EMERGENCY_ACTIVATED = "emergency_activated"
    EMERGENCY_DEACTIVATED = "emergency_deactivated"
    STOPPING = "stopping"
    LANGUAGE_CHANGED = "language_changed"
    NOT_UNDERSTOOD = "not_understood"
    OBSTACLE = "obstacle"
    DIRECTION_LEFT = "direction_left"
    DIRECTION_FRONT = "direction_front"
    DIRECTION_RIGHT = "direction_right"
    I_CAN_SEE = "i_can_see"
    OBJECT_ENTRY = "object_entry"
    NO_OBJECT = "no_object"
    RECOGNIZED_TEXT = "recognized_text"
    NO_TEXT = "no_text"
    TEXT_FAILED = "text_failed"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    STATUS_LISTENING = "status_listening"
    STATUS_EMERGENCY = "status_emergency"
    STATUS_ACTIVE_MODE = "status_active_mode"
    COMMAND_HINT = "command_hint"


_PHRASES: dict[Language, dict[Phrase, str]] = {
    Language.ENGLISH: {
        Phrase.WELCOME: (
            "Welcome to Visual Assistant. Say 'Navigate' to detect obstacles, "
            "'Read' for text recognition, or 'Identify' to identify objects around you."
        ),
        Phrase.NAVIGATION_STARTED: "Starting navigation mode. I will detect obstacles and guide you.",
        Phrase.READING_STARTED: "Starting text recognition mode. Point the camera at text to read it.",
        Phrase.IDENTIFY_STARTED: "Starting object detection mode. I will identify objects around you.",
        Phrase.HOME_RETURNED: "Returning to home mode",
        Phrase.EMERGENCY_ACTIVATED: "SOS Emergency Mode activated",
        Phrase.EMERGENCY_DEACTIVATED: "SOS Emergency Mode deactivated",
        Phrase.STOPPING: "Stopping application",
        Phrase.LANGUAGE_CHANGED: "Language changed to English",
        Phrase.NOT_UNDERSTOOD: "I didn't understand. Try saying 'Navigate', 'Read', or 'Identify'.",
        Phrase.OBSTACLE: "{label} ahead to the {direction}. ",
        Phrase.DIRECTION_LEFT: "left",
        Phrase.DIRECTION_FRONT: "front",
        Phrase.DIRECTION_RIGHT: "right",
        Phrase.I_CAN_SEE: "I can see {entries}",
        Phrase.OBJECT_ENTRY: "{label} ({percent}%)",
        Phrase.NO_OBJECT: "No object detected",
        Phrase.RECOGNIZED_TEXT: "Recognized text: {text}",
        Phrase.NO_TEXT: "No text found",
        Phrase.TEXT_FAILED: "Text recognition failed",
        Phrase.SENSOR_UNAVAILABLE: "Motion sensor not available. Shake to call for help is disabled.",
        Phrase.STATUS_LISTENING: "Listening for commands...",
        Phrase.STATUS_EMERGENCY: "SOS ALARM ACTIVE",
        Phrase.STATUS_ACTIVE_MODE: "Active mode: {mode}",
        Phrase.COMMAND_HINT: "Say: 'Navigate', 'Read', or 'Identify'",
    },
    Language.HINDI: {
        Phrase.WELCOME: (
            "विजुअल असिस्टेंट में आपका स्वागत है। बाधाओं का पता लगाने के लिए 'नेविगेट' कहें, "
            "टेक्स्ट पहचान के लिए 'रीड', या अपने आसपास की वस्तुओं की पहचान के लिए 'आइडेंटिफाई' कहें।"
        ),
        Phrase.NAVIGATION_STARTED: "नेविगेशन मोड शुरू हो रहा है। मैं बाधाओं का पता लगाकर आपका मार्गदर्शन करूँगा।",
        Phrase.READING_STARTED: "पढ़ने का मोड शुरू हो रहा है। पाठ पढ़ने के लिए कैमरे को टेक्स्ट की ओर घुमाएं।",
        Phrase.IDENTIFY_STARTED: "वस्तु पहचान मोड शुरू हो रहा है। मैं आपके आसपास की वस्तुओं की पहचान करूँगा।",
        Phrase.HOME_RETURNED: "होम मोड पर वापस आ गए",
        Phrase.EMERGENCY_ACTIVATED: "एसओएस आपातकालीन मोड सक्रिय",
        Phrase.EMERGENCY_DEACTIVATED: "एसओएस आपातकालीन मोड बंद",
        Phrase.STOPPING: "एप्लिकेशन बंद हो रहा है",
        Phrase.LANGUAGE_CHANGED: "भाषा हिंदी में बदली गई",
        Phrase.NOT_UNDERSTOOD: "मैं समझ नहीं पाया। 'नेविगेट', 'रीड' या 'आइडेंटिफाई' कहें।",
        Phrase.OBSTACLE: "{label} {direction} है। ",
        Phrase.DIRECTION_LEFT: "बाईं ओर",
        Phrase.DIRECTION_FRONT: "सामने",
        Phrase.DIRECTION_RIGHT: "दाईं ओर",
        Phrase.I_CAN_SEE: "मैं देख सकता हूँ {entries}",
        Phrase.OBJECT_ENTRY: "{label} ({percent}%)",
        Phrase.NO_OBJECT: "कोई वस्तु नहीं मिली",
        Phrase.RECOGNIZED_TEXT: "पहचाना गया पाठ: {text}",
        Phrase.NO_TEXT: "कोई पाठ नहीं मिला",
        Phrase.TEXT_FAILED: "पाठ पहचान विफल रही",
        Phrase.SENSOR_UNAVAILABLE: "मोशन सेंसर उपलब्ध नहीं है। हिलाकर मदद बुलाने की सुविधा बंद है।",
        Phrase.STATUS_LISTENING: "सुन रहा है...",
        Phrase.STATUS_EMERGENCY: "एसओएस सक्रिय",
        Phrase.STATUS_ACTIVE_MODE: "सक्रिय मोड: {mode}",
        Phrase.COMMAND_HINT: "कहें: 'नेविगेट', 'रीड', या 'आइडेंटिफाई'",
    },
    Language.MARATHI: {
        Phrase.WELCOME: (
            "व्हिज्युअल असिस्टंट मध्ये आपले स्वागत आहे। अडथळे शोधण्यासाठी 'नेविगेट' म्हणा, "
            "मजकूर ओळखण्यासाठी 'रीड', किंवा आपल्या आजूबाजूच्या वस्तू ओळखण्यासाठी 'आयडेंटिफाय' म्हणा।"
        ),
        Phrase.NAVIGATION_STARTED: "नेव्हिगेशन मोड सुरू होत आहे। मी अडथळे शोधून तुम्हाला मार्गदर्शन करेन।",
        Phrase.READING_STARTED: "वाचन मोड सुरू होत आहे। मजकूर वाचण्यासाठी कॅमेरा मजकूराकडे निर्देशित करा।",
        Phrase.IDENTIFY_STARTED: "वस्तू ओळख मोड सुरू होत आहे। मी तुमच्या आजूबाजूच्या वस्तू ओळखेन।",
        Phrase.HOME_RETURNED: "होम मोड वर परत आलो",
        Phrase.EMERGENCY_ACTIVATED: "एसओएस आणीबाणी मोड सुरू",
        Phrase.EMERGENCY_DEACTIVATED: "एसओएस आणीबाणी मोड बंद",
        Phrase.STOPPING: "अ‍ॅप्लिकेशन बंद होत आहे",
        Phrase.LANGUAGE_CHANGED: "भाषा मराठी मध्ये बदलली",
        Phrase.NOT_UNDERSTOOD: "मला समजले नाही. 'नेविगेट', 'रीड' किंवा 'आयडेंटिफाय' म्हणा.",
        Phrase.OBSTACLE: "{label} {direction} आहे. ",
        Phrase.DIRECTION_LEFT: "डावीकडे",
        Phrase.DIRECTION_FRONT: "समोर",
        Phrase.DIRECTION_RIGHT: "उजवीकडे",
        Phrase.I_CAN_SEE: "मी पाहू शकतो {entries}",
        Phrase.OBJECT_ENTRY: "{label} ({percent}%)",
        Phrase.NO_OBJECT: "कोणतीही वस्तू सापडली नाही",
        Phrase.RECOGNIZED_TEXT: "ओळखलेला मजकूर: {text}",
        Phrase.NO_TEXT: "कोणताही मजकूर सापडला नाही",
        Phrase.TEXT_FAILED: "मजकूर ओळख अयशस्वी झाली",
        Phrase.SENSOR_UNAVAILABLE: "मोशन सेन्सर उपलब्ध नाही. हलवून मदत मागवण्याची सुविधा बंद आहे.",
        Phrase.STATUS_LISTENING: "ऐकत आहे...",
        Phrase.STATUS_EMERGENCY: "एसओएस सक्रिय",
        Phrase.STATUS_ACTIVE_MODE: "सक्रिय मोड: {mode}",
        Phrase.COMMAND_HINT: "म्हणा: 'नेविगेट', 'रीड', किंवा 'आयडेंटिफाय'",
    },
}

# (indicator label, short name used in the status line)
_MODE_LABELS: dict[Language, dict[Mode, tuple[str, str]]] = {
    Language.ENGLISH: {
        Mode.HOME: ("HOME", "HOME"),
        Mode.OBJECT_DETECTION: ("IDENTIFY", "IDENTIFY"),
        Mode.TEXT_RECOGNITION: ("READ", "READ"),
        Mode.NAVIGATION: ("NAVIGATE", "NAVIGATE"),
        Mode.EMERGENCY: ("SOS", "SOS"),
    },
    Language.HINDI: {
        Mode.HOME: ("होम मोड", "होम"),
        Mode.OBJECT_DETECTION: ("पहचान मोड", "पहचान"),
        Mode.TEXT_RECOGNITION: ("पढ़ने का मोड", "पढ़ना"),
        Mode.NAVIGATION: ("नेविगेशन मोड", "नेविगेशन"),
        Mode.EMERGENCY: ("एसओएस मोड", "एसओएस"),
    },
    Language.MARATHI: {
        Mode.HOME: ("होम मोड", "होम"),
        Mode.OBJECT_DETECTION: ("ओळख मोड", "ओळख"),
        Mode.TEXT_RECOGNITION: ("वाचन मोड", "वाचन"),
        Mode.NAVIGATION: ("नेविगेशन मोड", "नेविगेशन"),
        Mode.EMERGENCY: ("एसओएस मोड", "एसओएस"),
    },
}

_DIRECTIONS = {
    "left": Phrase.DIRECTION_LEFT,
    "front": Phrase.DIRECTION_FRONT,
    "right": Phrase.DIRECTION_RIGHT,
}

_HINDI_MARKERS = ("है", "में", "का", "के", "की", "एक")
_MARATHI_MARKERS = ("आहे", "मध्ये", "च्या", "आणि", "मराठी")


def render(phrase: Phrase, language: Language, **fields: Any) -> str:
    """Render ``phrase`` for ``language``, falling back to English."""

    table = _PHRASES.get(language) or _PHRASES[Language.ENGLISH]
    template = table.get(phrase) or _PHRASES[Language.ENGLISH][phrase]
    return template.format(**fields) if fields else template


def render_obstacle(label: str, direction: str, language: Language) -> str:
    direction_phrase = _DIRECTIONS.get(direction, Phrase.DIRECTION_FRONT)
    return render(
        Phrase.OBSTACLE,
        language,
        label=label,
        direction=render(direction_phrase, language),
    )


def render_object_list(entries: Iterable[str], language: Language) -> str:
    return render(Phrase.I_CAN_SEE, language, entries=", ".join(entries))


def mode_label(mode: Mode, language: Language) -> str:
    return _MODE_LABELS.get(language, _MODE_LABELS[Language.ENGLISH])[mode][0]


def mode_name(mode: Mode, language: Language) -> str:
    return _MODE_LABELS.get(language, _MODE_LABELS[Language.ENGLISH])[mode][1]


def display_state(mode: Mode, language: Language) -> DisplayState:
    """Build the localized indicator, status line and hint for the host shell."""

    if mode is Mode.HOME:
        status = render(Phrase.STATUS_LISTENING, language)
    elif mode is Mode.EMERGENCY:
        status = render(Phrase.STATUS_EMERGENCY, language)
    else:
        status = render(Phrase.STATUS_ACTIVE_MODE, language, mode=mode_name(mode, language))
    return DisplayState(
        mode=mode,
        language=language,
        mode_label=mode_label(mode, language),
        status_text=status,
        command_hint=render(Phrase.COMMAND_HINT, language),
    )


def contains_devanagari(text: str) -> bool:
    return any("\u0900" <= char <= "\u097f" for char in text)


def guess_text_language(text: str) -> Language:
    """Pick the voice for recognized text from its script and marker words."""

    if not contains_devanagari(text):
        return Language.ENGLISH
    if any(marker in text for marker in _HINDI_MARKERS):
        return Language.HINDI
    if any(marker in text for marker in _MARATHI_MARKERS):
        return Language.MARATHI
    return Language.HINDI

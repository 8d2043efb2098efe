"""Tests for localized phrases and display state."""

from __future__ import annotations

import pytest

from interaction.languages import (
    Phrase,
    display_state,
    guess_text_language,
    render,
    render_object_list,
    render_obstacle,
)
from interaction.state import Language, Mode


@pytest.mark.parametrize("language", list(Language))
def test_every_phrase_renders_in_every_language(language) -> None:
    fields = {"label": "x", "direction": "y", "entries": "z", "percent": 1, "text": "t", "mode": "m"}
    for phrase in Phrase:
        assert render(phrase, language, **fields)


def test_obstacle_directions_are_localized() -> None:
    assert render_obstacle("door", "front", Language.ENGLISH) == "door ahead to the front. "
    assert render_obstacle("door", "left", Language.MARATHI) == "door डावीकडे आहे. "


def test_object_list_joins_entries() -> None:
    assert render_object_list(["cup (90%)", "pen (50%)"], Language.ENGLISH) == "I can see cup (90%), pen (50%)"


def test_display_state_for_home_and_emergency() -> None:
    home = display_state(Mode.HOME, Language.ENGLISH)
    sos = display_state(Mode.EMERGENCY, Language.HINDI)

    assert home.status_text == "Listening for commands..."
    assert home.command_hint.startswith("Say:")
    assert sos.mode_label == "एसओएस मोड"
    assert sos.status_text == "एसओएस सक्रिय"


def test_display_state_for_active_mode() -> None:
    state = display_state(Mode.OBJECT_DETECTION, Language.ENGLISH)

    assert state.status_text == "Active mode: IDENTIFY"


@pytest.mark.parametrize(
    "text, language",
    [
        ("EXIT", Language.ENGLISH),
        ("यह दरवाज़ा है", Language.HINDI),
        ("हा दरवाजा आहे", Language.MARATHI),
        ("दरवाजा", Language.HINDI),
    ],
)
def test_guess_text_language(text, language) -> None:
    assert guess_text_language(text) is language


def test_language_from_name_accepts_aliases() -> None:
    assert Language.from_name("Hindi") is Language.HINDI
    assert Language.from_name("मराठी") is Language.MARATHI
    assert Language.from_name("klingon") is Language.ENGLISH
    assert Language.HINDI.locale == "hi-IN"

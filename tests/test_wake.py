"""Tests for wake phrase matching."""

import pytest

from ridevoice.config import DEFAULT_WAKE_PHRASES
from ridevoice.wake import WakePhraseMatcher, WakePhraseSet, matches


@pytest.fixture
def phrase_set():
    """The default wake phrases."""
    return WakePhraseSet(DEFAULT_WAKE_PHRASES)


@pytest.fixture
def matcher(phrase_set):
    """Create a matcher over the default phrases."""
    return WakePhraseMatcher(phrase_set)


@pytest.mark.parametrize("text", DEFAULT_WAKE_PHRASES)
def test_every_configured_phrase_matches(phrase_set, text):
    """Each configured phrase activates."""
    assert matches(text, phrase_set) is True


@pytest.mark.parametrize(
    "text",
    [
        "Hey Snap",  # missing exclamation mark
        "hey snapp",  # case differs
        "Hey Snapp.",  # extra punctuation
        " Hey Snapp",  # leading whitespace
        "Hey Snapp ",  # trailing whitespace
        "Hey  Snapp",  # double space
        "",
    ],
)
def test_near_misses_do_not_match(phrase_set, text):
    """No normalization is applied."""
    assert matches(text, phrase_set) is False


def test_matcher_scenarios(matcher):
    """Hey Snapp activates, Hey Snap does not."""
    assert matcher.matches("Hey Snapp") is True
    assert matcher.matches("Hey Snap") is False


def test_closest_phrase(matcher):
    """Near misses report the closest configured phrase."""
    assert matcher.closest("Hey Snap") in {"Hey Snap!", "Hey Snapp"}
    assert matcher.closest("completely unrelated words") is None


def test_phrase_set_is_immutable_snapshot():
    """Changing the source list does not change the set."""
    phrases = ["Hey Snapp"]
    phrase_set = WakePhraseSet(phrases)
    phrases.append("Hello")

    assert len(phrase_set) == 1
    assert "Hello" not in phrase_set
    assert list(phrase_set) == ["Hey Snapp"]


def test_phrase_set_rejects_non_strings():
    """Only strings can be members."""
    phrase_set = WakePhraseSet(["Hey Snapp"])
    assert None not in phrase_set
    assert b"Hey Snapp" not in phrase_set


def test_empty_phrase_set():
    """At least one phrase is required."""
    with pytest.raises(ValueError):
        WakePhraseSet([])

"""Wake phrase matching.

Matching is an exact, case- and punctuation-sensitive membership test. No
trimming or normalization is applied: a transcript activates the pipeline only
if it is identical to one of the configured phrases. Variants have to be added
to the phrase set explicitly.
"""

import difflib
import logging
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)


class WakePhraseSet:
    """Immutable set of accepted activation transcripts."""

    __slots__ = ("_phrases",)

    def __init__(self, phrases: Iterable[str]):
        self._phrases = frozenset(phrases)
        if not self._phrases:
            raise ValueError("At least one wake phrase is required")

    def __contains__(self, text: object) -> bool:
        return isinstance(text, str) and text in self._phrases

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._phrases))

    def __len__(self) -> int:
        return len(self._phrases)

    def __repr__(self) -> str:
        return f"WakePhraseSet({sorted(self._phrases)!r})"


def matches(text: str, phrase_set: WakePhraseSet) -> bool:
    """True iff text is identical to a member of phrase_set."""
    return text in phrase_set


class WakePhraseMatcher:
    """Decides whether an activation transcript is a valid wake phrase."""

    def __init__(self, phrase_set: WakePhraseSet):
        self.phrase_set = phrase_set

    def matches(self, text: str) -> bool:
        matched = matches(text, self.phrase_set)
        if matched:
            logger.info(f"Wake phrase matched: {text!r}")
        else:
            closest = self.closest(text)
            logger.info(
                f"Wake phrase not matched: {text!r}"
                + (f" (closest: {closest!r})" if closest else "")
            )
        return matched

    def closest(self, text: str) -> Optional[str]:
        """Nearest configured phrase, for reporting near misses only."""
        candidates = difflib.get_close_matches(text, list(self.phrase_set), n=1)
        return candidates[0] if candidates else None

"""Reference and title normalization shared by the segmenter and matchers.

Service orders write scripture as ``Luke 2:21-40`` while the ProPresenter
library names the same content ``Luke 2_21-40 (NIV)-1``. Both collapse to the
same token stream once the separator punctuation is dropped.
"""

import re

_SEPARATORS = re.compile(r"[:_\-()]")
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize(s: str) -> str:
    """Lower-case, turn ``: _ - ( )`` into spaces, and collapse whitespace.

    Total on any string; ``normalize("") == ""``.
    """
    lowered = _SEPARATORS.sub(" ", s.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def normalize_title(s: str) -> str:
    """Normalize a song title: ``normalize`` plus removal of remaining punctuation.

    ``"It's Your Blood"`` and ``"Its Your Blood"`` compare equal.
    """
    stripped = _NON_WORD.sub("", normalize(s))
    return _WHITESPACE.sub(" ", stripped).strip()


def alphabetic_tokens(s: str, min_length: int = 3) -> set[str]:
    """Alphabetic tokens of a normalized string with at least ``min_length`` chars."""
    return {tok for tok in normalize(s).split(" ") if tok.isalpha() and len(tok) >= min_length}

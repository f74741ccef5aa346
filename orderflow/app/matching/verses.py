"""Scripture reference matching against the service content library.

Library entries for readings are named after ProPresenter's Bible export
(``Luke 2_21-40 (NIV)-1``) while service orders cite ``Luke 2:21-40``, so
equality alone almost never hits. Confidence is tiered on normalized strings:

- 1.00: equal
- 0.85: one contains the other on token boundaries
- 0.60: they share an alphabetic token longer than two chars (usually the book)
"""

import re
from collections.abc import Sequence

from orderflow.app.matching.songs import build_result
from orderflow.app.models.common import MatchStrategy, PoolKey, SectionType, ServiceSlot
from orderflow.app.models.matching import CandidatePresentation, MatchCandidate, MatchResult
from orderflow.app.models.service import ServiceSection
from orderflow.app.text.normalize import alphabetic_tokens, normalize

EXACT_CONFIDENCE = 1.0
CONTAINS_CONFIDENCE = 0.85
PARTIAL_CONFIDENCE = 0.60

TRANSLATION_TAG = re.compile(r"\b(?:niv|esv|nlt|kjv|nkjv|nasb|csb|msg)\b", re.IGNORECASE)
TRANSLATION_TOKENS = frozenset({"niv", "esv", "nlt", "kjv", "nkjv", "nasb", "csb", "msg"})


def _contains(a: str, b: str) -> bool:
    return f" {a} " in f" {b} "


def reference_confidence(reference: str, name: str) -> float | None:
    """Tiered confidence between a cited reference and a library name, or None."""
    ref = normalize(reference)
    candidate = normalize(name)
    if not ref or not candidate:
        return None
    if ref == candidate:
        return EXACT_CONFIDENCE
    if _contains(ref, candidate) or _contains(candidate, ref):
        return CONTAINS_CONFIDENCE
    shared = (alphabetic_tokens(ref) & alphabetic_tokens(candidate)) - TRANSLATION_TOKENS
    if shared:
        return PARTIAL_CONFIDENCE
    return None


def scripture_pool(pool: Sequence[CandidatePresentation]) -> list[CandidatePresentation]:
    """Entries that look like Bible exports (carry a translation tag).

    Falls back to the whole pool when none do.
    """
    tagged = [p for p in pool if TRANSLATION_TAG.search(p.display_name)]
    return tagged if tagged else list(pool)


def match_verse(
    reference: str,
    pool: Sequence[CandidatePresentation],
    *,
    position: int = 0,
    max_candidates: int = 5,
) -> MatchResult:
    """Match one scripture reference; review is required below the containment tier."""
    candidates: list[MatchCandidate] = []
    for presentation in scripture_pool(pool):
        confidence = reference_confidence(reference, presentation.display_name)
        if confidence is not None:
            candidates.append(MatchCandidate(presentation=presentation, confidence=confidence))

    candidates.sort(
        key=lambda c: (-c.confidence, c.presentation.display_name.lower(), c.presentation.id)
    )

    section = ServiceSection(
        type=SectionType.bible_verse,
        title=reference,
        position=position,
        slot=ServiceSlot.reading,
    )
    return build_result(
        section,
        candidates[:max_candidates],
        auto_accept_threshold=CONTAINS_CONFIDENCE,
        strategy=MatchStrategy.reference,
        pool=PoolKey.service_content,
    )


def match_verses(
    sections: Sequence[ServiceSection],
    pool: Sequence[CandidatePresentation],
    *,
    max_candidates: int = 5,
) -> list[MatchResult]:
    """Match every scripture section against the service content pool."""
    return [
        match_verse(s.title, pool, position=s.position, max_candidates=max_candidates)
        for s in sections
        if s.type == SectionType.bible_verse
    ]

"""Substring search over library pools for the manual review picker."""

from collections.abc import Sequence

from orderflow.app.models.matching import CandidatePresentation

DEFAULT_SEARCH_LIMIT = 25


def search_presentations(
    pool: Sequence[CandidatePresentation],
    query: str,
    *,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> list[CandidatePresentation]:
    """Case-insensitive substring search; prefix hits first, then alphabetical."""
    term = query.strip().lower()
    if not term:
        return []

    hits = [p for p in pool if term in p.display_name.lower()]
    hits.sort(
        key=lambda p: (
            0 if p.display_name.lower().startswith(term) else 1,
            p.display_name.lower(),
            p.id,
        )
    )
    return hits[:limit]

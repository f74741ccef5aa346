"""Manual fallback hand-off for results that need a human.

Produces the string to copy and the lookup URL to open; copying and opening
are the client's job.
"""

from urllib.parse import quote

from orderflow.app.models.common import MatchStrategy, PoolKey
from orderflow.app.models.matching import ManualFallback, MatchResult

CCLI_SEARCH_URL = "https://songselect.ccli.com/search/results?SearchText={query}"
YOUTUBE_SEARCH_URL = "https://www.youtube.com/results?search_query={query}"
BIBLE_GATEWAY_URL = "https://www.biblegateway.com/passage/?search={query}&version={version}"


def lookup_url(result: MatchResult, *, bible_version: str = "NIV") -> str:
    """Where an operator would go to find missing content.

    Scripture -> Bible Gateway, videos (kids or service content) -> YouTube,
    songs -> CCLI SongSelect.
    """
    query = quote(result.source_title, safe="")
    if result.strategy == MatchStrategy.reference:
        return BIBLE_GATEWAY_URL.format(query=query, version=quote(bible_version, safe=""))
    if result.pool in (PoolKey.kids, PoolKey.service_content):
        return YOUTUBE_SEARCH_URL.format(query=query)
    return CCLI_SEARCH_URL.format(query=query)


def manual_fallback(result: MatchResult, *, bible_version: str = "NIV") -> ManualFallback | None:
    """Fallback for results still awaiting review; None once a selection exists."""
    if not result.requires_review or result.selected is not None:
        return None
    return ManualFallback(
        clipboard_text=result.source_title,
        lookup_url=lookup_url(result, bible_version=bible_version),
    )


def attach_fallbacks(
    results: list[MatchResult], *, bible_version: str = "NIV"
) -> list[MatchResult]:
    """Set ``fallback`` on every result in place and return the list."""
    for result in results:
        result.fallback = manual_fallback(result, bible_version=bible_version)
    return results

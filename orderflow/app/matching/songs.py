"""Title matching of songs and videos against ProPresenter library pools.

Scores every candidate in the pool chosen for a section, keeps those at or
above the recall threshold, and auto-selects the best one only when it clears
the auto-accept threshold. Everything else is left for manual review.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from rapidfuzz import fuzz

from orderflow.app.config import Settings
from orderflow.app.models.common import MatchStrategy, PoolKey, SectionType, ServiceSlot
from orderflow.app.models.matching import (
    CandidatePresentation,
    MatchCandidate,
    MatchResult,
    MatchStatistics,
)
from orderflow.app.models.service import ServiceSection
from orderflow.app.text.normalize import normalize_title

MIN_PREFIX_CHARS = 4

Pools = Mapping[PoolKey, Sequence[CandidatePresentation]]


@dataclass(frozen=True)
class MatchingConfig:
    """Thresholds for title matching."""

    auto_accept_threshold: float = 0.85
    recall_threshold: float = 0.70
    kids_fallback_threshold: float = 0.70
    prefix_match_floor: float = 0.92
    max_candidates: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "MatchingConfig":
        return cls(
            auto_accept_threshold=settings.auto_accept_threshold,
            recall_threshold=settings.recall_threshold,
            kids_fallback_threshold=settings.kids_fallback_threshold,
            prefix_match_floor=settings.prefix_match_floor,
            max_candidates=settings.max_candidates,
        )


def _is_word_prefix(a: str, b: str) -> bool:
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    return len(shorter) >= MIN_PREFIX_CHARS and longer.startswith(shorter + " ")


def similarity(a: str, b: str, *, prefix_floor: float | None = None) -> float:
    """Similarity of two normalized titles in [0, 1].

    Normalized Indel similarity (symmetric, 1.0 only for equal strings). When
    one title is a whole-word prefix of the other ("Faithful One" vs
    "Faithful One So Unchanging") the score is raised to ``prefix_floor``.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    score = fuzz.ratio(a, b) / 100.0
    if prefix_floor is not None and _is_word_prefix(a, b):
        coverage = min(len(a), len(b)) / max(len(a), len(b))
        score = max(score, prefix_floor, coverage)
    return min(score, 1.0)


def score_candidates(
    title: str,
    pool: Sequence[CandidatePresentation],
    config: MatchingConfig,
) -> list[MatchCandidate]:
    """Rank pool entries by similarity to ``title``.

    Deterministic: ties are broken by display name, then id.
    """
    normalized = normalize_title(title)
    scored: list[MatchCandidate] = []
    for presentation in pool:
        confidence = similarity(
            normalized,
            normalize_title(presentation.display_name),
            prefix_floor=config.prefix_match_floor,
        )
        if confidence >= config.recall_threshold:
            scored.append(MatchCandidate(presentation=presentation, confidence=confidence))

    scored.sort(
        key=lambda c: (-c.confidence, c.presentation.display_name.lower(), c.presentation.id)
    )
    return scored[: config.max_candidates]


def build_result(
    section: ServiceSection,
    candidates: list[MatchCandidate],
    *,
    auto_accept_threshold: float,
    strategy: MatchStrategy = MatchStrategy.title,
    pool: PoolKey | None = None,
) -> MatchResult:
    """Wrap ranked candidates into a MatchResult with review/selection state."""
    best = candidates[0] if candidates else None
    requires_review = best is None or best.confidence < auto_accept_threshold
    return MatchResult(
        source_title=section.title,
        slot=section.slot,
        position=section.position,
        strategy=strategy,
        pool=pool,
        candidates=candidates,
        best_match=best,
        requires_review=requires_review,
        selected=None if requires_review or best is None else best.presentation,
    )


def select_pool(section: ServiceSection) -> PoolKey:
    """Kids slot -> kids pool, other videos -> service content, else worship."""
    if section.slot == ServiceSlot.kids or section.is_kids_video:
        return PoolKey.kids
    if section.type == SectionType.video:
        return PoolKey.service_content
    return PoolKey.worship


def _alias_candidate(
    section: ServiceSection,
    pool: Sequence[CandidatePresentation],
    aliases: Mapping[str, str],
) -> MatchCandidate | None:
    content_id = aliases.get(normalize_title(section.title))
    if content_id is None:
        return None
    for presentation in pool:
        if presentation.id == content_id:
            return MatchCandidate(presentation=presentation, confidence=1.0)
    return None


def _all_pools(pools: Pools) -> list[CandidatePresentation]:
    merged: list[CandidatePresentation] = []
    for key in (PoolKey.worship, PoolKey.service_content, PoolKey.kids):
        merged.extend(pools.get(key, ()))
    return merged


def match_section(
    section: ServiceSection,
    pools: Pools,
    config: MatchingConfig,
    aliases: Mapping[str, str] | None = None,
) -> MatchResult:
    """Match one song or video section against its pool."""
    pool_key = select_pool(section)
    pool = pools.get(pool_key, ())

    if aliases:
        alias_hit = _alias_candidate(section, pool, aliases)
        if alias_hit is not None:
            return build_result(
                section,
                [alias_hit],
                auto_accept_threshold=config.auto_accept_threshold,
                pool=pool_key,
            )

    candidates = score_candidates(section.title, pool, config)
    best_confidence = candidates[0].confidence if candidates else 0.0

    # Kids material is often filed in the wrong library; widen the search
    if pool_key == PoolKey.kids and best_confidence < config.kids_fallback_threshold:
        widened = score_candidates(section.title, _all_pools(pools), config)
        if widened and widened[0].confidence > best_confidence:
            candidates = widened

    # Seasonal services also play worship-song videos
    elif (
        pool_key == PoolKey.service_content
        and section.special_service_type
        and not candidates
    ):
        candidates = score_candidates(section.title, pools.get(PoolKey.worship, ()), config)

    return build_result(
        section,
        candidates,
        auto_accept_threshold=config.auto_accept_threshold,
        pool=pool_key,
    )


def match_sections(
    sections: Sequence[ServiceSection],
    pools: Pools,
    config: MatchingConfig | None = None,
    aliases: Mapping[str, str] | None = None,
) -> list[MatchResult]:
    """Match every song/video section; other section types are skipped.

    A pure function of its inputs, so a rescan over unchanged pools returns
    identical results.
    """
    config = config or MatchingConfig()
    return [
        match_section(section, pools, config, aliases)
        for section in sections
        if section.type in (SectionType.song, SectionType.video)
    ]


def calculate_statistics(results: Sequence[MatchResult]) -> MatchStatistics:
    """Counts for the review screen."""
    total = len(results)
    auto_matched = sum(1 for r in results if not r.requires_review and r.best_match)
    requires_review = sum(1 for r in results if r.requires_review)
    not_found = sum(1 for r in results if not r.candidates)
    confidence_sum = sum(r.best_match.confidence for r in results if r.best_match)
    return MatchStatistics(
        total=total,
        auto_matched=auto_matched,
        requires_review=requires_review,
        not_found=not_found,
        average_confidence=round(confidence_sum / total, 4) if total else 0.0,
    )

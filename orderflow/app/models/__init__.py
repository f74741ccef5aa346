"""Models package - re-exports for convenience."""

from orderflow.app.models.common import (
    MatchStrategy,
    PoolKey,
    Provenance,
    SectionType,
    ServiceSlot,
)
from orderflow.app.models.matching import (
    CandidatePresentation,
    ManualFallback,
    MatchCandidate,
    MatchResult,
    MatchStatistics,
)
from orderflow.app.models.playlist import (
    ItemId,
    LeafDraft,
    LibraryInfo,
    PlaylistItem,
    PresentationInfo,
)
from orderflow.app.models.service import ParsedService, ServiceSection

__all__ = [
    # Common
    "SectionType",
    "ServiceSlot",
    "PoolKey",
    "MatchStrategy",
    "Provenance",
    # Service order
    "ServiceSection",
    "ParsedService",
    # Matching
    "CandidatePresentation",
    "MatchCandidate",
    "MatchResult",
    "MatchStatistics",
    "ManualFallback",
    # Playlist
    "ItemId",
    "PresentationInfo",
    "PlaylistItem",
    "LeafDraft",
    "LibraryInfo",
]

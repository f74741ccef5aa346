"""Matching domain models: candidates, results, statistics."""

from pydantic import BaseModel, ConfigDict, Field

from orderflow.app.models.common import MatchStrategy, PoolKey, ServiceSlot


class CandidatePresentation(BaseModel):
    """One entry of an external content pool."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    pool_id: str  # library UUID the entry was listed from


class MatchCandidate(BaseModel):
    """A candidate with its similarity to the source title."""

    presentation: CandidatePresentation
    confidence: float = Field(..., ge=0.0, le=1.0)


class ManualFallback(BaseModel):
    """Hand-off for results that could not be resolved automatically."""

    clipboard_text: str
    lookup_url: str


class MatchResult(BaseModel):
    """Match outcome for one service section.

    ``selected`` is the only field changed after creation (user confirmation
    or re-match).
    """

    source_title: str
    slot: ServiceSlot
    position: int
    strategy: MatchStrategy = MatchStrategy.title
    pool: PoolKey | None = None
    candidates: list[MatchCandidate] = Field(default_factory=list)
    best_match: MatchCandidate | None = None
    requires_review: bool = True
    selected: CandidatePresentation | None = None
    fallback: ManualFallback | None = None

    @property
    def not_found(self) -> bool:
        return not self.candidates


class MatchStatistics(BaseModel):
    """Summary over a set of match results."""

    total: int
    auto_matched: int
    requires_review: int
    not_found: int
    average_confidence: float

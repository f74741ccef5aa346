"""Run state for the step-gated ingestion workflow."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from orderflow.app.errors import PipelineWarning, StepOrderError
from orderflow.app.models.common import PoolKey, ServiceSlot
from orderflow.app.models.matching import CandidatePresentation, MatchResult, MatchStatistics
from orderflow.app.models.service import ParsedService

RunStep = Literal["created", "parsed", "matched", "built"]
SelectionKind = Literal["song", "verse"]

STEP_ORDER: tuple[RunStep, ...] = ("created", "parsed", "matched", "built")


class BuildSummary(BaseModel):
    """Outcome of the single playlist write of a build."""

    playlist_id: str
    item_count: int
    replaced_slots: list[ServiceSlot]
    written_at: datetime


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PipelineRun:
    """State of one run through parse -> match -> build.

    Every step overwrites its own outputs; nothing here is written to
    ProPresenter except through ``build``.
    """

    run_id: UUID
    raw_text: str = ""
    step: RunStep = "created"
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    # Step outputs
    parsed: ParsedService | None = None
    song_results: list[MatchResult] = field(default_factory=list)
    verse_results: list[MatchResult] = field(default_factory=list)
    statistics: MatchStatistics | None = None
    warnings: list[PipelineWarning] = field(default_factory=list)
    last_write: BuildSummary | None = None
    error: str | None = None

    # Pools as fetched by the last match, used to validate manual selections
    pools: dict[PoolKey, list[CandidatePresentation]] = field(default_factory=dict)
    pools_fetched_at: datetime | None = None
    # (kind, position) -> content id the operator picked explicitly
    manual_selections: dict[tuple[SelectionKind, int], str] = field(default_factory=dict)

    def require_step(self, *allowed: RunStep) -> None:
        """Raise StepOrderError unless the run is at one of ``allowed``."""
        if self.step not in allowed:
            raise StepOrderError(
                f"Run {self.run_id} is at step '{self.step}', expected one of {list(allowed)}"
            )

    def advance(self, step: RunStep) -> None:
        self.step = step
        self.updated_at = _now()

    def results(self, kind: SelectionKind) -> list[MatchResult]:
        return self.song_results if kind == "song" else self.verse_results

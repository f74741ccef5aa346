"""Error taxonomy for the ingestion pipeline.

Segmenting and matching never raise for sparse or malformed input; they return
degraded results carrying ``PipelineWarning`` records. Only the playlist write
(and the invariant guarding it) is fatal for a run.
"""

from typing import Literal

from pydantic import BaseModel

WarningKind = Literal["parse_degraded", "no_candidates", "stale_read", "unplaced"]


class PipelineWarning(BaseModel):
    """Non-fatal condition surfaced to the operator for manual completion."""

    kind: WarningKind
    message: str
    position: int | None = None


class PipelineError(Exception):
    """Base class for fatal pipeline errors."""

    pass


class ReconcileRejectedError(PipelineError):
    """ProPresenter rejected the playlist replace call.

    The status and body are kept verbatim; the remote side gives no finer detail.
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed to update playlist: {status_code} {body}")


class EmptyContentIdError(PipelineError):
    """A presentation leaf would be written without a content identifier."""

    def __init__(self, index: int, name: str) -> None:
        self.index = index
        self.name = name
        super().__init__(f"Playlist item {index} ({name!r}) has no content identifier")


class StepOrderError(PipelineError):
    """A gated step was requested before its prerequisite step completed."""

    pass


class RunNotFoundError(PipelineError):
    """Unknown run id."""

    pass


class SelectionError(PipelineError):
    """A user selection could not be applied."""

    pass

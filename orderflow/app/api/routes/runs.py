"""Pipeline run endpoints - parse, match, select, build."""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from orderflow.app.api.deps import HANDLED_ERRORS, get_pipeline, to_http_exception
from orderflow.app.errors import PipelineWarning
from orderflow.app.models.common import ServiceSlot
from orderflow.app.models.matching import MatchResult, MatchStatistics
from orderflow.app.models.service import ParsedService
from orderflow.app.orchestration.pipeline import ServicePipeline
from orderflow.app.orchestration.state import (
    BuildSummary,
    PipelineRun,
    RunStep,
    SelectionKind,
)

router = APIRouter(prefix="/runs", tags=["runs"])

Pipeline = Annotated[ServicePipeline, Depends(get_pipeline)]


class ParseRequest(BaseModel):
    """Request body for POST /runs and POST /runs/{run_id}/parse."""

    text: str = Field(..., description="Plain text extracted from the service order document")


class SelectionRequest(BaseModel):
    """Request body for POST /runs/{run_id}/selections."""

    kind: SelectionKind
    index: int = Field(..., ge=0)
    content_id: str | None = Field(None, description="Presentation id; null clears the selection")
    remember: bool = Field(False, description="Save as a song alias for future runs")


class BuildRequest(BaseModel):
    """Request body for POST /runs/{run_id}/build."""

    playlist_id: str = Field(..., min_length=1)


class RunResponse(BaseModel):
    """Full state of a run."""

    run_id: str
    step: RunStep
    created_at: datetime
    updated_at: datetime
    parsed: ParsedService | None
    song_results: list[MatchResult]
    verse_results: list[MatchResult]
    statistics: MatchStatistics | None
    warnings: list[PipelineWarning]
    last_write: BuildSummary | None
    error: str | None

    @classmethod
    def from_run(cls, run: PipelineRun) -> "RunResponse":
        return cls(
            run_id=str(run.run_id),
            step=run.step,
            created_at=run.created_at,
            updated_at=run.updated_at,
            parsed=run.parsed,
            song_results=run.song_results,
            verse_results=run.verse_results,
            statistics=run.statistics,
            warnings=run.warnings,
            last_write=run.last_write,
            error=run.error,
        )


class BuildResponse(BaseModel):
    """Response for POST /runs/{run_id}/build."""

    playlist_id: str
    item_count: int
    replaced_slots: list[ServiceSlot]
    warnings: list[PipelineWarning]


@router.post("", response_model=RunResponse, status_code=status.HTTP_201_CREATED)
async def create_run(request: ParseRequest, pipeline: Pipeline) -> RunResponse:
    """Create a run and segment the document."""
    run = pipeline.create_run(request.text)
    return RunResponse.from_run(run)


@router.get("/{run_id}", response_model=RunResponse)
async def get_run(run_id: uuid.UUID, pipeline: Pipeline) -> RunResponse:
    try:
        run = pipeline.store.get(run_id)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return RunResponse.from_run(run)


@router.post("/{run_id}/parse", response_model=RunResponse)
async def reparse_run(run_id: uuid.UUID, request: ParseRequest, pipeline: Pipeline) -> RunResponse:
    """Re-segment a run; later steps must be repeated."""
    try:
        run = pipeline.parse(pipeline.store.get(run_id), request.text)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return RunResponse.from_run(run)


@router.post("/{run_id}/match", response_model=RunResponse)
async def match_run(run_id: uuid.UUID, pipeline: Pipeline) -> RunResponse:
    """Match against freshly fetched libraries.

    Raises:
        HTTPException: 404 unknown run, 409 not parsed, 502/504 ProPresenter failure
    """
    try:
        run = await pipeline.match(pipeline.store.get(run_id))
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return RunResponse.from_run(run)


@router.post("/{run_id}/selections", response_model=MatchResult)
async def select_presentation(
    run_id: uuid.UUID, request: SelectionRequest, pipeline: Pipeline
) -> MatchResult:
    """Confirm or clear the presentation for one song or reading."""
    try:
        return await pipeline.select(
            pipeline.store.get(run_id),
            request.kind,
            request.index,
            request.content_id,
            remember=request.remember,
        )
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e


@router.post("/{run_id}/build", response_model=BuildResponse)
async def build_run(run_id: uuid.UUID, request: BuildRequest, pipeline: Pipeline) -> BuildResponse:
    """Write the selections into the target playlist with a single replace call.

    Raises:
        HTTPException: 409 not matched, 502 write rejected (status/body verbatim), 504 timeout
    """
    try:
        run = pipeline.store.get(run_id)
        summary = await pipeline.build(run, request.playlist_id)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return BuildResponse(
        playlist_id=summary.playlist_id,
        item_count=summary.item_count,
        replaced_slots=summary.replaced_slots,
        warnings=run.warnings,
    )

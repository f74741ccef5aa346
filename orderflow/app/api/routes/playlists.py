"""Playlist endpoints - create from template, focus a section."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from orderflow.app.api.deps import HANDLED_ERRORS, get_pipeline, to_http_exception
from orderflow.app.orchestration.pipeline import ServicePipeline

router = APIRouter(prefix="/playlists", tags=["playlists"])

Pipeline = Annotated[ServicePipeline, Depends(get_pipeline)]


class FromTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    template_id: str | None = Field(None, description="Defaults to the configured template")


class FromTemplateResponse(BaseModel):
    playlist_id: str


class FocusRequest(BaseModel):
    header: str = Field(..., min_length=1)


class FocusResponse(BaseModel):
    playlist_id: str
    index: int


@router.post(
    "/from-template", response_model=FromTemplateResponse, status_code=status.HTTP_201_CREATED
)
async def create_from_template(
    request: FromTemplateRequest, pipeline: Pipeline
) -> FromTemplateResponse:
    try:
        playlist_id = await pipeline.create_from_template(request.name, request.template_id)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return FromTemplateResponse(playlist_id=playlist_id)


@router.post("/{playlist_id}/focus", response_model=FocusResponse)
async def focus_section(
    playlist_id: str, request: FocusRequest, pipeline: Pipeline
) -> FocusResponse:
    """Focus the playlist in ProPresenter and trigger the matching section header."""
    try:
        index = await pipeline.focus_section(playlist_id, request.header)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return FocusResponse(playlist_id=playlist_id, index=index)

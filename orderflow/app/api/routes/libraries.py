"""Library endpoints - listing and search for the manual picker."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from orderflow.app.api.deps import HANDLED_ERRORS, get_pipeline, to_http_exception
from orderflow.app.models.matching import CandidatePresentation
from orderflow.app.models.playlist import LibraryInfo
from orderflow.app.orchestration.pipeline import ServicePipeline

router = APIRouter(prefix="/libraries", tags=["libraries"])

Pipeline = Annotated[ServicePipeline, Depends(get_pipeline)]


@router.get("", response_model=list[LibraryInfo])
async def list_libraries(pipeline: Pipeline) -> list[LibraryInfo]:
    try:
        result = await pipeline.client.get_libraries()
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return result.value


@router.get("/{library_ids}/search", response_model=list[CandidatePresentation])
async def search_libraries(
    library_ids: str,
    pipeline: Pipeline,
    q: Annotated[str, Query(min_length=1)],
) -> list[CandidatePresentation]:
    """Search one or more libraries (comma-separated ids) by substring.

    Prefix hits come first, then alphabetical; at most 25 results.
    """
    ids = [lib_id.strip() for lib_id in library_ids.split(",") if lib_id.strip()]
    if not ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No library ids")
    try:
        return await pipeline.search_libraries(ids, q)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e

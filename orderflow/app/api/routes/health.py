"""Health check endpoints.

- /health: process is up
- /healthz: ProPresenter is reachable (503 otherwise)
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from orderflow.app.api.deps import HANDLED_ERRORS, get_pipeline
from orderflow.app.orchestration.pipeline import ServicePipeline

router = APIRouter()


async def check_propresenter(pipeline: ServicePipeline) -> tuple[bool, dict[str, Any]]:
    """Check ProPresenter connectivity.

    Returns:
        (is_ok, component_status)
    """
    try:
        result = await pipeline.client.version()
    except HANDLED_ERRORS as e:
        return (False, {"status": f"error: {type(e).__name__}"})
    return (True, {"status": "ok", **result.value})


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for process supervisors.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    pipeline: Annotated[ServicePipeline, Depends(get_pipeline)],
) -> dict[str, Any] | JSONResponse:
    """Health check including ProPresenter reachability.

    Returns:
        200 with component status if ProPresenter answers
        503 otherwise
    """
    ok, propresenter = await check_propresenter(pipeline)
    body = {
        "status": "ok" if ok else "degraded",
        "components": {"propresenter": propresenter},
    }
    if not ok:
        return JSONResponse(content=body, status_code=503)
    return body

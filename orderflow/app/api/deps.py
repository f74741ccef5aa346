"""Shared route dependencies and error mapping."""

from functools import lru_cache

import httpx
from fastapi import HTTPException, status

from orderflow.app.adapters.propresenter import ProPresenterClient
from orderflow.app.config import get_settings
from orderflow.app.errors import (
    EmptyContentIdError,
    PipelineError,
    ReconcileRejectedError,
    RunNotFoundError,
    SelectionError,
    StepOrderError,
)
from orderflow.app.matching.aliases import AliasStore
from orderflow.app.orchestration.pipeline import ServicePipeline
from orderflow.app.tools.executor import CallExecutionError, CallExecutor, CallTimeoutError
from orderflow.app.utils.logging import StructuredCallLogger
from orderflow.app.utils.metrics import PrometheusCallMetrics

# Errors routes translate into HTTP responses
HANDLED_ERRORS = (PipelineError, CallTimeoutError, CallExecutionError, httpx.HTTPError)


@lru_cache
def get_pipeline() -> ServicePipeline:
    """Process-wide pipeline (one ProPresenter connection, one run store)."""
    settings = get_settings()
    executor = CallExecutor(metrics=PrometheusCallMetrics(), logger=StructuredCallLogger())
    client = ProPresenterClient.from_settings(settings, executor=executor)
    return ServicePipeline(client, settings, aliases=AliasStore(settings.alias_store_path))


def to_http_exception(exc: Exception) -> HTTPException:
    """Map pipeline and call failures to HTTP errors.

    A rejected write keeps ProPresenter's status and body verbatim.
    """
    if isinstance(exc, RunNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, StepOrderError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, SelectionError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, ReconcileRejectedError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(exc),
                "status_code": exc.status_code,
                "body": exc.body,
            },
        )
    if isinstance(exc, EmptyContentIdError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": str(exc), "index": exc.index, "name": exc.name},
        )
    if isinstance(exc, CallTimeoutError):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes:
    - external_call_latency_ms{call, outcome}
    - external_call_errors_total{call, reason}
    - pipeline_steps_total{step, outcome}
    - match_outcomes_total{strategy, outcome}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

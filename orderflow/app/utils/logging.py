"""Structured logging for calls to ProPresenter."""

import logging
from typing import Any

from orderflow.app.tools.executor import CallContext

logger = logging.getLogger(__name__)


class StructuredCallLogger:
    """Structured logger for external call attempts."""

    def log_attempt(
        self,
        ctx: CallContext,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log one attempt; info on success, warning otherwise."""
        log_data: dict[str, Any] = {
            "trace_id": ctx.trace_id,
            "run_id": ctx.run_id,
            "call": ctx.call_name,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"External call: {ctx.call_name} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

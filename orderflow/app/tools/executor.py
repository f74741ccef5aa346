"""Async executor for calls to the presentation-control system.

Every call goes through here:
- Hard timeout per attempt
- Bounded retries with 200-500ms jitter (reads only; writes get retry_count=0)
- Cancellation support
- Metrics and structured logging
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, TypeVar

from orderflow.app.models.common import Provenance

T = TypeVar("T")


# Exception types
class CallTimeoutError(Exception):
    """Call exceeded its timeout on every attempt."""

    pass


class CallExecutionError(Exception):
    """Call failed on every attempt."""

    pass


class CallCancelledError(Exception):
    """Call was cancelled."""

    pass


@dataclass
class CallResult(Generic[T]):
    """Call result with provenance; ``fetched_at`` drives the staleness check."""

    value: T
    provenance: Provenance


@dataclass(frozen=True)
class CallContext:
    """Context for a call with tracing."""

    trace_id: str
    run_id: str | None
    call_name: str


@dataclass
class CancelToken:
    """Token for cancellation signaling."""

    cancelled: bool = False

    def throw_if_cancelled(self) -> None:
        """Raise CallCancelledError if cancelled."""
        if self.cancelled:
            raise CallCancelledError("run cancelled")


@dataclass
class CallConfig:
    """Configuration for one call."""

    timeout_ms: int
    retry_count: int = 0
    retry_jitter_min_ms: int = 200
    retry_jitter_max_ms: int = 500
    retry_on: tuple[type[BaseException], ...] = (Exception,)


# Metrics interface (to be implemented by actual metrics system)
class CallMetrics:
    """Interface for call metrics."""

    def record_latency(self, call: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, call: str, reason: str) -> None:
        pass


# Logging interface
class CallLogger:
    """Interface for structured logging."""

    def log_attempt(
        self,
        ctx: CallContext,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        pass


class CallExecutor:
    """Runs async calls with timeout, retry and cancellation."""

    def __init__(
        self,
        metrics: CallMetrics | None = None,
        logger: CallLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self._metrics = metrics or CallMetrics()
        self._logger = logger or CallLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def execute(
        self,
        ctx: CallContext,
        config: CallConfig,
        fn: Callable[[], Awaitable[T]],
        cancel_token: CancelToken | None = None,
        *,
        source_url: str | None = None,
    ) -> CallResult[T]:
        """Execute a call.

        Args:
            ctx: Call context with trace_id/run_id
            config: Timeout and retry configuration
            fn: Zero-argument coroutine factory, invoked once per attempt
            cancel_token: Cancellation token (optional)
            source_url: Recorded in provenance

        Returns:
            CallResult[T] wrapping the value with provenance

        Raises:
            CallTimeoutError: Every attempt timed out
            CallCancelledError: Execution was cancelled
            CallExecutionError: Every attempt failed
            Exception: Errors outside ``config.retry_on`` propagate unchanged
        """
        if cancel_token is None:
            cancel_token = CancelToken()

        cancel_token.throw_if_cancelled()

        last_error: Exception | None = None
        for attempt in range(config.retry_count + 1):
            cancel_token.throw_if_cancelled()
            attempt_start = time.monotonic()

            try:
                value = await asyncio.wait_for(fn(), timeout=config.timeout_ms / 1000)

                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_latency(ctx.call_name, "success", elapsed_ms)
                self._logger.log_attempt(ctx, attempt + 1, "success", elapsed_ms)

                provenance = Provenance(
                    source=ctx.call_name,
                    source_url=source_url,
                    fetched_at=datetime.now(UTC),
                )
                return CallResult(value=value, provenance=provenance)

            except TimeoutError as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                last_error = e

                self._metrics.record_latency(ctx.call_name, "timeout", elapsed_ms)
                self._metrics.inc_error(ctx.call_name, "timeout")
                self._logger.log_attempt(
                    ctx, attempt + 1, "timeout", elapsed_ms, error_reason="timeout"
                )

            except CallCancelledError:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_latency(ctx.call_name, "cancelled", elapsed_ms)
                self._logger.log_attempt(
                    ctx, attempt + 1, "cancelled", elapsed_ms, error_reason="cancelled"
                )
                raise

            except Exception as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_latency(ctx.call_name, "error", elapsed_ms)
                self._metrics.inc_error(ctx.call_name, type(e).__name__)
                self._logger.log_attempt(
                    ctx, attempt + 1, "error", elapsed_ms, error_reason=type(e).__name__
                )
                if not isinstance(e, config.retry_on):
                    raise
                last_error = e

            if attempt < config.retry_count:
                cancel_token.throw_if_cancelled()
                jitter_ms = random.uniform(config.retry_jitter_min_ms, config.retry_jitter_max_ms)
                await self._sleep(jitter_ms / 1000)

        # All attempts exhausted
        if isinstance(last_error, TimeoutError):
            raise CallTimeoutError(f"Call {ctx.call_name} timed out after all retries")
        raise CallExecutionError(f"Call {ctx.call_name} failed after all retries") from last_error

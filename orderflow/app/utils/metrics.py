"""Prometheus metrics for external calls and pipeline steps."""

from prometheus_client import Counter, Histogram

# External call metrics
external_call_latency_ms = Histogram(
    "external_call_latency_ms",
    "ProPresenter call latency in milliseconds",
    ["call", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, 10000],
)

external_call_errors_total = Counter(
    "external_call_errors_total",
    "Total ProPresenter call errors",
    ["call", "reason"],
)

# Pipeline metrics
pipeline_steps_total = Counter(
    "pipeline_steps_total",
    "Pipeline step executions",
    ["step", "outcome"],
)

match_outcomes_total = Counter(
    "match_outcomes_total",
    "Match results by outcome (auto, review, not_found)",
    ["strategy", "outcome"],
)


class PrometheusCallMetrics:
    """Prometheus-based call metrics implementation."""

    def record_latency(self, call: str, outcome: str, latency_ms: float) -> None:
        external_call_latency_ms.labels(call=call, outcome=outcome).observe(latency_ms)

    def inc_error(self, call: str, reason: str) -> None:
        external_call_errors_total.labels(call=call, reason=reason).inc()


def record_step(step: str, outcome: str) -> None:
    pipeline_steps_total.labels(step=step, outcome=outcome).inc()


def record_match_outcome(strategy: str, outcome: str) -> None:
    match_outcomes_total.labels(strategy=strategy, outcome=outcome).inc()

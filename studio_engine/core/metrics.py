"""Prometheus metrics for HTTP and background engine observability."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

HTTP_REQUESTS_TOTAL = Counter(
    "studio_engine_http_requests_total",
    "Total number of HTTP requests handled by the API.",
    ["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "studio_engine_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

BOOKING_TRANSITIONS_TOTAL = Counter(
    "studio_engine_booking_transitions_total",
    "Automatic booking transition attempts by kind and outcome.",
    ["kind", "outcome"],
)

PAYMENT_REPORTS_TOTAL = Counter(
    "studio_engine_payment_reports_total",
    "Payment report generation attempts by outcome.",
    ["report_type", "outcome"],
)

SCHEDULER_TASK_RUNS_TOTAL = Counter(
    "studio_engine_scheduler_task_runs_total",
    "Scheduler task executions by task name and outcome.",
    ["task", "outcome"],
)

SCHEDULER_TASK_DURATION_SECONDS = Histogram(
    "studio_engine_scheduler_task_duration_seconds",
    "Scheduler task duration in seconds.",
    ["task"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0),
)


def _request_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)
    return request.url.path


async def instrument_http_request(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Track request count and latency for each endpoint."""
    started_at = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        path_label = _request_path_label(request)
        method_label = request.method.upper()
        duration_seconds = perf_counter() - started_at

        HTTP_REQUESTS_TOTAL.labels(
            method=method_label,
            path=path_label,
            status_code=str(status_code),
        ).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(
            method=method_label,
            path=path_label,
        ).observe(duration_seconds)


def record_transition_stats(kind: str, stats: dict[str, int]) -> None:
    """Publish one tick's transition counters."""
    for outcome in ("applied", "skipped", "failed"):
        count = stats.get(outcome, 0)
        if count:
            BOOKING_TRANSITIONS_TOTAL.labels(kind=kind, outcome=outcome).inc(count)


def build_metrics_response() -> Response:
    """Return metrics payload in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

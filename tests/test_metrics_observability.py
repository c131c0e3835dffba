from __future__ import annotations

import pytest
from fastapi import Request, Response

import studio_engine.main as main_module
from studio_engine.core.metrics import (
    build_metrics_response,
    instrument_http_request,
    record_transition_stats,
)


def _make_request(path: str) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
        "server": ("testserver", 80),
        "query_string": b"",
    }
    return Request(scope)


@pytest.mark.asyncio
async def test_http_metrics_instrumentation_tracks_status_and_path() -> None:
    async def _no_content(_: Request) -> Response:
        return Response(status_code=204)

    request = _make_request("/health")
    await instrument_http_request(request, _no_content)

    payload = build_metrics_response().body.decode("utf-8")
    assert "studio_engine_http_requests_total" in payload
    assert 'path="/health"' in payload
    assert 'status_code="204"' in payload


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_prometheus_payload() -> None:
    response = await main_module.metrics_endpoint(_make_request("/metrics"))
    payload = response.body.decode("utf-8")

    assert response.status_code == 200
    assert "studio_engine_http_requests_total" in payload


def test_transition_stats_are_published_per_outcome() -> None:
    record_transition_stats("metrics_probe", {"applied": 2, "skipped": 1, "failed": 0})

    payload = build_metrics_response().body.decode("utf-8")
    assert 'studio_engine_booking_transitions_total{kind="metrics_probe",outcome="applied"}' in payload
    assert 'studio_engine_booking_transitions_total{kind="metrics_probe",outcome="skipped"}' in payload
    assert 'kind="metrics_probe",outcome="failed"' not in payload

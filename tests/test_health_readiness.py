from __future__ import annotations

import pytest
from fastapi import HTTPException

import studio_engine.main as main_module


@pytest.mark.asyncio
async def test_healthcheck_reports_ok() -> None:
    assert await main_module.healthcheck() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_check_returns_ready_when_database_is_available(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _ready() -> bool:
        return True

    monkeypatch.setattr(main_module, "_is_database_ready", _ready)

    response = await main_module.readiness_check()

    assert response["status"] == "ready"
    assert response["database"] == "ok"
    assert "timestamp" in response


@pytest.mark.asyncio
async def test_readiness_check_returns_503_when_database_is_unavailable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _not_ready() -> bool:
        return False

    monkeypatch.setattr(main_module, "_is_database_ready", _not_ready)

    with pytest.raises(HTTPException) as exc:
        await main_module.readiness_check()
    assert exc.value.status_code == 503


def test_engine_routes_are_mounted_under_api_prefix() -> None:
    paths = main_module.app.openapi()["paths"]

    assert "/api/v1/reports/generate" in paths
    assert "/api/v1/reports/{year}/{month}" in paths
    assert "/api/v1/booking/{booking_id}/approve" in paths
    assert "/api/v1/booking/{booking_id}/reject" in paths
    assert "/api/v1/booking/{booking_id}/no-show" in paths

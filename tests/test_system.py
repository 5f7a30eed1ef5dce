from __future__ import annotations

import pytest
from httpx import AsyncClient
from starlette.requests import Request

from app import main
from app.middleware.logging import request_context
from app.middleware.rate_limit import extract_ingest_mac


def _request(method: str, path: str) -> Request:
    return Request({"type": "http", "method": method, "path": path, "headers": [], "query_string": b""})


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "fieldsense", "version": main.VERSION}


@pytest.mark.asyncio
async def test_health_ready_ok(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _ok(_app):
        return {
            "database": {"ok": True, "message": "ok"},
            "redis": {"ok": True, "message": "ok"},
        }

    monkeypatch.setattr(main, "_run_readiness_checks", _ok)

    response = await client.get("/health/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["checks"]["redis"]["ok"] is True


@pytest.mark.asyncio
async def test_health_ready_degraded(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _bad(_app):
        return {
            "database": {"ok": False, "message": "db down"},
            "redis": {"ok": True, "message": "ok"},
        }

    monkeypatch.setattr(main, "_run_readiness_checks", _bad)

    response = await client.get("/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"]["message"] == "db down"


@pytest.mark.asyncio
async def test_redis_check_without_connection(client: AsyncClient) -> None:
    result = await main._check_redis(main.app)
    assert result == {"ok": False, "message": "redis not connected"}


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: AsyncClient) -> None:
    request_id = "orchard-request-id"
    response = await client.get("/health", headers={"x-request-id": request_id})
    assert response.status_code == 200
    assert response.headers.get("x-request-id") == request_id


@pytest.mark.asyncio
async def test_request_id_generated_when_missing(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    generated = response.headers.get("x-request-id")
    assert generated is not None
    assert len(generated) >= 8


def test_ingest_mac_extracted_only_for_reading_posts() -> None:
    assert extract_ingest_mac(_request("POST", "/api/v1/devices/aa:bb:cc:dd:ee:ff/readings")) == "AA:BB:CC:DD:EE:FF"
    assert extract_ingest_mac(_request("GET", "/api/v1/devices/aa:bb:cc:dd:ee:ff/readings")) is None
    assert extract_ingest_mac(_request("POST", "/api/v1/devices")) is None


def test_request_context_binds_device_mac() -> None:
    context = request_context(_request("GET", "/api/v1/devices/aa:bb:cc:dd:ee:ff/liveness"), "rid-1")
    assert context == {"request_id": "rid-1", "device_mac": "AA:BB:CC:DD:EE:FF"}
    assert request_context(_request("GET", "/api/v1/fields"), "rid-2") == {"request_id": "rid-2"}

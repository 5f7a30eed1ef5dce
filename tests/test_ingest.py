from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from httpx import AsyncClient

from app.main import app
from app.middleware import rate_limit
from app.models.devices import Reading
from app.models.enums import DeviceTypeEnum, UpdateIntervalEnum
from app.schemas.device import IngestReceipt, ReadingIn
from app.services.ingest_service import IngestService
from tests.conftest import FakeAsyncSession, FakeRedis, FakeResult

SLAVE_MAC = "00:00:00:00:00:02"
BASE = datetime(2026, 4, 3, 2, 0, tzinfo=UTC)


def _device(device_type: DeviceTypeEnum = DeviceTypeEnum.SLAVE, **overrides: object) -> SimpleNamespace:
    values: dict[str, object] = {
        "mac": SLAVE_MAC,
        "device_type": device_type,
        "update_interval": UpdateIntervalEnum.NORMAL,
        "is_active": True,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _reading(minutes: int, temperature: float = 3.0, **overrides: object) -> ReadingIn:
    return ReadingIn(timestamp=BASE + timedelta(minutes=minutes), temperature=temperature, **overrides)


def _stored(db: FakeAsyncSession) -> list[Reading]:
    return [obj for obj in db.added if isinstance(obj, Reading)]


@pytest.mark.asyncio
async def test_ingest_stores_sorted_readings_with_device_interval() -> None:
    db = FakeAsyncSession([FakeResult(_device()), FakeResult(None)])

    receipt = await IngestService(db).ingest_readings(
        SLAVE_MAC,
        [_reading(10), _reading(0), _reading(5)],
    )

    assert receipt.status == "ok"
    assert receipt.inserted_count == 3
    assert receipt.event_ids == [1, 2, 3]
    assert receipt.timestamp_start == BASE
    assert receipt.timestamp_end == BASE + timedelta(minutes=10)
    assert [row.timestamp for row in _stored(db)] == [BASE + timedelta(minutes=m) for m in (0, 5, 10)]
    assert {row.state for row in _stored(db)} == {UpdateIntervalEnum.NORMAL}


@pytest.mark.asyncio
async def test_ingest_keeps_explicit_state() -> None:
    db = FakeAsyncSession([FakeResult(_device()), FakeResult(None)])

    await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(0, state=UpdateIntervalEnum.HIGH)])

    assert _stored(db)[0].state == UpdateIntervalEnum.HIGH


@pytest.mark.asyncio
async def test_ingest_warns_on_duplicate_timestamp_against_stored_reading() -> None:
    db = FakeAsyncSession([FakeResult(_device()), FakeResult(BASE)])

    receipt = await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(0)])

    assert receipt.status == "partial"
    assert receipt.inserted_count == 1
    assert receipt.warnings[0].message == "duplicate timestamp"


@pytest.mark.asyncio
async def test_ingest_warns_on_duplicate_within_batch() -> None:
    db = FakeAsyncSession([FakeResult(_device()), FakeResult(None)])

    receipt = await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(5), _reading(5)])

    assert receipt.inserted_count == 2
    assert [warning.message for warning in receipt.warnings] == ["duplicate timestamp"]


@pytest.mark.asyncio
async def test_ingest_warns_on_cadence_gap() -> None:
    device = _device(update_interval=UpdateIntervalEnum.HIGH)
    db = FakeAsyncSession([FakeResult(device), FakeResult(BASE)])

    receipt = await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(1), _reading(30)])

    assert receipt.status == "partial"
    assert len(receipt.warnings) == 1
    assert receipt.warnings[0].index == 1
    assert "exceeds HIGH cadence" in receipt.warnings[0].message


@pytest.mark.asyncio
async def test_ingest_warns_for_inactive_device() -> None:
    db = FakeAsyncSession([FakeResult(_device(is_active=False)), FakeResult(None)])

    receipt = await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(0)])

    assert receipt.status == "partial"
    assert receipt.warnings[0].message == "device is flagged inactive"
    assert receipt.warnings[0].index is None


@pytest.mark.asyncio
async def test_ingest_rejects_master_device() -> None:
    db = FakeAsyncSession([FakeResult(_device(DeviceTypeEnum.MASTER, update_interval=None))])

    with pytest.raises(ValueError, match="only SLAVE devices"):
        await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(0)])
    assert db.added == []


@pytest.mark.asyncio
async def test_ingest_unknown_device() -> None:
    db = FakeAsyncSession([FakeResult(None)])

    with pytest.raises(LookupError, match="not found"):
        await IngestService(db).ingest_readings(SLAVE_MAC, [_reading(0)])


def test_naive_timestamps_are_read_as_utc() -> None:
    reading = ReadingIn(timestamp=datetime(2026, 4, 3, 2, 0), temperature=1.0)
    assert reading.timestamp.tzinfo is UTC


@pytest.mark.asyncio
async def test_ingest_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_ingest(self: IngestService, mac: str, readings: object) -> IngestReceipt:
        return IngestReceipt(device_mac=mac, status="ok", inserted_count=1, event_ids=[7])

    monkeypatch.setattr(IngestService, "ingest_readings", fake_ingest)

    response = await client.post(
        f"/api/v1/devices/{SLAVE_MAC.lower()}/readings",
        json={"readings": [{"timestamp": BASE.isoformat(), "temperature": -1.2}]},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["device_mac"] == SLAVE_MAC
    assert body["event_ids"] == [7]


@pytest.mark.asyncio
async def test_ingest_endpoint_rejects_empty_batch(client: AsyncClient) -> None:
    response = await client.post(f"/api/v1/devices/{SLAVE_MAC}/readings", json={"readings": []})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_ingest_rate_limited_per_device(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
    fake_redis: FakeRedis,
) -> None:
    async def fake_ingest(self: IngestService, mac: str, readings: object) -> IngestReceipt:
        return IngestReceipt(device_mac=mac, status="ok", inserted_count=1)

    monkeypatch.setattr(IngestService, "ingest_readings", fake_ingest)
    monkeypatch.setattr(
        rate_limit,
        "get_settings",
        lambda: SimpleNamespace(rate_limit_ingest_per_minute=2),
    )
    app.state.redis = fake_redis
    payload = {"readings": [{"timestamp": BASE.isoformat(), "temperature": 1.0}]}

    statuses = [
        (await client.post(f"/api/v1/devices/{SLAVE_MAC}/readings", json=payload)).status_code
        for _ in range(3)
    ]
    other = await client.post("/api/v1/devices/00:00:00:00:00:03/readings", json=payload)

    assert statuses == [201, 201, 429]
    assert other.status_code == 201

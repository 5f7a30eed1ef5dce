from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.dialects import postgresql

from app.models.crops import Crop, CropStageTransition
from app.models.devices import Device
from app.models.enums import FrostRiskEnum
from app.models.field import Field
from app.models.geo import GeoPoint
from app.schemas.field import FieldCreate, FieldUpdate
from app.schemas.frost import FieldFrostRiskRead, FrostRiskAssessment
from app.services import field_service
from app.services.field_service import FieldRecord, FieldService
from app.services.frost_service import FrostRiskService
from tests.conftest import FakeAsyncSession, FakeResult


def _record(**overrides: object) -> FieldRecord:
    values: dict[str, object] = {
        "id": uuid4(),
        "name": "North Orchard",
        "is_bio": True,
        "user_id": uuid4(),
        "created_at": datetime.now(UTC),
        "point": GeoPoint(longitude=11.1194, latitude=46.0664),
    }
    values.update(overrides)
    return FieldRecord(**values)  # type: ignore[arg-type]


def _row(record: FieldRecord) -> SimpleNamespace:
    return SimpleNamespace(
        id=record.id,
        name=record.name,
        is_bio=record.is_bio,
        user_id=record.user_id,
        created_at=record.created_at,
        longitude=record.longitude,
        latitude=record.latitude,
    )


@pytest.mark.asyncio
async def test_create_field_returns_decoded_coordinates(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    record = _record()

    async def fake_create(self: FieldService, payload: object) -> FieldRecord:
        return record

    monkeypatch.setattr(FieldService, "create_field", fake_create)

    response = await client.post(
        "/api/v1/fields",
        json={
            "name": "North Orchard",
            "is_bio": True,
            "longitude": 11.1194,
            "latitude": 46.0664,
            "user_id": str(record.user_id),
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["longitude"] == pytest.approx(11.1194)
    assert body["latitude"] == pytest.approx(46.0664)
    assert body["is_bio"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "coordinates",
    [{"longitude": 200, "latitude": 46.0}, {"longitude": 11.0, "latitude": -91}],
)
async def test_create_field_rejects_out_of_range_coordinates(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
    coordinates: dict[str, float],
) -> None:
    called = False

    async def fake_create(self: FieldService, payload: object) -> FieldRecord:
        nonlocal called
        called = True
        return _record()

    monkeypatch.setattr(FieldService, "create_field", fake_create)

    response = await client.post(
        "/api/v1/fields",
        json={"name": "Bad", "user_id": str(uuid4()), **coordinates},
    )

    assert response.status_code == 422
    assert called is False


@pytest.mark.asyncio
async def test_list_fields(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    records = [_record(name="Newest"), _record(name="Oldest")]

    async def fake_list(self: FieldService) -> list[FieldRecord]:
        return records

    monkeypatch.setattr(FieldService, "list_fields", fake_list)

    response = await client.get("/api/v1/fields")

    assert response.status_code == 200
    assert [item["name"] for item in response.json()["items"]] == ["Newest", "Oldest"]


@pytest.mark.asyncio
async def test_get_missing_field_maps_to_404(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_get(self: FieldService, field_id: object) -> FieldRecord:
        raise LookupError(f"Field {field_id} not found")

    monkeypatch.setattr(FieldService, "get_field", fake_get)

    response = await client.get(f"/api/v1/fields/{uuid4()}")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


@pytest.mark.asyncio
async def test_delete_field_returns_id(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    field_id = uuid4()

    async def fake_delete(self: FieldService, _field_id: object) -> object:
        return field_id

    monkeypatch.setattr(FieldService, "delete_field", fake_delete)

    response = await client.delete(f"/api/v1/fields/{field_id}")

    assert response.status_code == 200
    assert response.json() == {"id": str(field_id)}


@pytest.mark.asyncio
async def test_field_frost_risk_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    field_id = uuid4()
    now = datetime.now(UTC)

    async def fake_evaluate(self: FrostRiskService, _field_id: object) -> FieldFrostRiskRead:
        return FieldFrostRiskRead(
            field_id=field_id,
            evaluated_at=now,
            items=[
                FrostRiskAssessment(
                    crop_id=uuid4(),
                    field_id=field_id,
                    window_start=now,
                    evaluated_at=now,
                    risk=FrostRiskEnum.unknown,
                    reason="crop has no current bloom stage",
                )
            ],
        )

    monkeypatch.setattr(FrostRiskService, "evaluate_field", fake_evaluate)

    response = await client.get(f"/api/v1/fields/{field_id}/frost-risk")

    assert response.status_code == 200
    assert response.json()["items"][0]["risk"] == "unknown"


@pytest.mark.asyncio
async def test_update_name_only_keeps_stored_coordinates(monkeypatch: pytest.MonkeyPatch) -> None:
    current = _record()
    renamed = _record(id=current.id, name="Renamed", user_id=current.user_id)
    db = FakeAsyncSession([FakeResult(row=_row(current)), FakeResult(row=_row(renamed))])

    encoded: list[GeoPoint] = []
    real_encode = field_service.encode_point

    def spy_encode(point: GeoPoint) -> object:
        encoded.append(point)
        return real_encode(point)

    monkeypatch.setattr(field_service, "encode_point", spy_encode)

    result = await FieldService(db).update_field(current.id, FieldUpdate(name="Renamed"))

    assert encoded == [current.point]
    assert result.name == "Renamed"
    assert result.longitude == pytest.approx(11.1194)
    assert len(db.executed) == 2


@pytest.mark.asyncio
async def test_update_latitude_only_keeps_longitude(monkeypatch: pytest.MonkeyPatch) -> None:
    current = _record()
    moved = _record(id=current.id, user_id=current.user_id, point=GeoPoint(11.1194, 46.5))
    db = FakeAsyncSession([FakeResult(row=_row(current)), FakeResult(row=_row(moved))])

    encoded: list[GeoPoint] = []
    real_encode = field_service.encode_point
    monkeypatch.setattr(
        field_service,
        "encode_point",
        lambda point: encoded.append(point) or real_encode(point),
    )

    await FieldService(db).update_field(current.id, FieldUpdate(latitude=46.5))

    assert encoded == [GeoPoint(longitude=11.1194, latitude=46.5)]


@pytest.mark.asyncio
async def test_create_field_requires_existing_owner() -> None:
    db = FakeAsyncSession([FakeResult(None)])

    with pytest.raises(LookupError, match="User"):
        await FieldService(db).create_field(
            FieldCreate(name="Orphan", longitude=11.0, latitude=46.0, user_id=uuid4())
        )
    assert len(db.executed) == 1


def _ondelete(column: object) -> str | None:
    (foreign_key,) = column.foreign_keys  # type: ignore[attr-defined]
    return foreign_key.ondelete


def test_field_deletion_cascades_crops_and_detaches_devices() -> None:
    assert _ondelete(Crop.__table__.c.field_id) == "CASCADE"
    assert _ondelete(CropStageTransition.__table__.c.crop_id) == "CASCADE"
    assert _ondelete(Device.__table__.c.field_id) == "SET NULL"
    assert Device.__table__.c.field_id.nullable is True
    assert Field.crops.property.passive_deletes is True
    assert Field.devices.property.passive_deletes is True


@pytest.mark.asyncio
async def test_delete_field_issues_single_delete_returning_id() -> None:
    current = _record()
    db = FakeAsyncSession([FakeResult(row=_row(current)), FakeResult(current.id)])

    deleted = await FieldService(db).delete_field(current.id)

    assert deleted == current.id
    sql = str(db.executed[1].compile(dialect=postgresql.dialect()))
    assert sql.startswith("DELETE FROM fields WHERE fields.id =")
    assert "RETURNING fields.id" in sql
    assert db.deleted == []


@pytest.mark.asyncio
async def test_delete_missing_field_issues_no_delete() -> None:
    db = FakeAsyncSession([FakeResult(row=None)])

    with pytest.raises(LookupError, match="not found"):
        await FieldService(db).delete_field(uuid4())
    assert len(db.executed) == 1

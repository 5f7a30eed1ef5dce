"""Field CRUD routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.routes.errors import map_service_error
from app.schemas.field import FieldCreate, FieldDeleted, FieldListRead, FieldRead, FieldUpdate
from app.schemas.frost import FieldFrostRiskRead
from app.services.field_service import FieldRecord, FieldService
from app.services.frost_service import FrostRiskService

router = APIRouter(prefix="/fields", tags=["fields"])


def _to_field_read(record: FieldRecord) -> FieldRead:
	return FieldRead(
		id=record.id,
		name=record.name,
		is_bio=record.is_bio,
		user_id=record.user_id,
		longitude=record.longitude,
		latitude=record.latitude,
		created_at=record.created_at,
	)


@router.post("", response_model=FieldRead, status_code=status.HTTP_201_CREATED)
async def create_field(payload: FieldCreate, db: AsyncSession = Depends(get_db)) -> FieldRead:
	service = FieldService(db)
	try:
		record = await service.create_field(payload)
	except Exception as exc:
		raise map_service_error(exc, "Unexpected field service failure") from exc
	return _to_field_read(record)


@router.get("", response_model=FieldListRead)
async def list_fields(db: AsyncSession = Depends(get_db)) -> FieldListRead:
	service = FieldService(db)
	try:
		records = await service.list_fields()
	except Exception as exc:
		raise map_service_error(exc, "Unexpected field service failure") from exc
	return FieldListRead(items=[_to_field_read(record) for record in records])


@router.get("/{field_id}", response_model=FieldRead)
async def get_field(field_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> FieldRead:
	service = FieldService(db)
	try:
		record = await service.get_field(field_id)
	except Exception as exc:
		raise map_service_error(exc, "Unexpected field service failure") from exc
	return _to_field_read(record)


@router.patch("/{field_id}", response_model=FieldRead)
async def update_field(
	field_id: uuid.UUID,
	payload: FieldUpdate,
	db: AsyncSession = Depends(get_db),
) -> FieldRead:
	service = FieldService(db)
	try:
		record = await service.update_field(field_id, payload)
	except Exception as exc:
		raise map_service_error(exc, "Unexpected field service failure") from exc
	return _to_field_read(record)


@router.delete("/{field_id}", response_model=FieldDeleted)
async def delete_field(field_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> FieldDeleted:
	service = FieldService(db)
	try:
		deleted_id = await service.delete_field(field_id)
	except Exception as exc:
		raise map_service_error(exc, "Unexpected field service failure") from exc
	return FieldDeleted(id=deleted_id)


@router.get("/{field_id}/frost-risk", response_model=FieldFrostRiskRead)
async def field_frost_risk(field_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> FieldFrostRiskRead:
	service = FrostRiskService(db)
	try:
		return await service.evaluate_field(field_id)
	except Exception as exc:
		raise map_service_error(exc, "Unexpected frost evaluation failure") from exc

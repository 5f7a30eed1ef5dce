"""Field CRUD across the geography encode/decode boundary."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.field import Field
from app.models.geo import GeoPoint, decode_latitude, decode_longitude, encode_point
from app.models.users import User
from app.schemas.field import FieldCreate, FieldUpdate

logger = structlog.get_logger("fieldsense.fields")


@dataclass(slots=True)
class FieldRecord:
	"""A field row with its point already decoded to plain numbers."""

	id: uuid.UUID
	name: str
	is_bio: bool
	user_id: uuid.UUID
	created_at: datetime
	point: GeoPoint

	@property
	def longitude(self) -> float:
		return self.point.longitude

	@property
	def latitude(self) -> float:
		return self.point.latitude


def field_columns() -> tuple[Any, ...]:
	"""Selectable columns for a field, with the point projected to X/Y."""
	return (
		Field.id,
		Field.name,
		Field.is_bio,
		Field.user_id,
		Field.created_at,
		decode_longitude(Field.gps_coords),
		decode_latitude(Field.gps_coords),
	)


class FieldService:
	"""Create, read, update and delete fields; the only writer of ``gps_coords``."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def create_field(self, payload: FieldCreate) -> FieldRecord:
		point = GeoPoint(longitude=payload.longitude, latitude=payload.latitude)
		await self._require_user(payload.user_id)

		stmt = (
			insert(Field)
			.values(
				name=payload.name,
				is_bio=payload.is_bio,
				user_id=payload.user_id,
				gps_coords=encode_point(point),
			)
			.returning(*field_columns())
		)
		row = (await self.db.execute(stmt)).one()
		record = self._to_record(row)
		logger.info(
			"field_created",
			field_id=str(record.id),
			user_id=str(record.user_id),
			longitude=record.longitude,
			latitude=record.latitude,
		)
		return record

	async def list_fields(self) -> list[FieldRecord]:
		stmt = select(*field_columns()).order_by(Field.created_at.desc())
		rows = await self.db.execute(stmt)
		return [self._to_record(row) for row in rows.all()]

	async def get_field(self, field_id: uuid.UUID) -> FieldRecord:
		stmt = select(*field_columns()).where(Field.id == field_id)
		row = (await self.db.execute(stmt)).one_or_none()
		if row is None:
			raise LookupError(f"Field {field_id} not found")
		return self._to_record(row)

	async def update_field(self, field_id: uuid.UUID, payload: FieldUpdate) -> FieldRecord:
		current = await self.get_field(field_id)
		changes = payload.model_dump(exclude_none=True)

		point = current.point.with_updates(
			longitude=changes.get("longitude"),
			latitude=changes.get("latitude"),
		)
		user_id = changes.get("user_id", current.user_id)
		if user_id != current.user_id:
			await self._require_user(user_id)

		stmt = (
			update(Field)
			.where(Field.id == field_id)
			.values(
				name=changes.get("name", current.name),
				is_bio=changes.get("is_bio", current.is_bio),
				user_id=user_id,
				gps_coords=encode_point(point),
			)
			.returning(*field_columns())
			.execution_options(synchronize_session=False)
		)
		row = (await self.db.execute(stmt)).one()
		return self._to_record(row)

	async def delete_field(self, field_id: uuid.UUID) -> uuid.UUID:
		"""Delete a field; its crops cascade and its devices are detached."""
		await self.get_field(field_id)
		stmt = (
			delete(Field)
			.where(Field.id == field_id)
			.returning(Field.id)
			.execution_options(synchronize_session=False)
		)
		deleted_id = (await self.db.execute(stmt)).scalar_one()
		logger.info("field_deleted", field_id=str(deleted_id))
		return deleted_id

	async def _require_user(self, user_id: uuid.UUID) -> None:
		row = await self.db.execute(select(User.id).where(User.id == user_id))
		if row.scalar_one_or_none() is None:
			raise LookupError(f"User {user_id} not found")

	@staticmethod
	def _to_record(row: Any) -> FieldRecord:
		return FieldRecord(
			id=row.id,
			name=row.name,
			is_bio=row.is_bio,
			user_id=row.user_id,
			created_at=row.created_at,
			point=GeoPoint.from_row(row),
		)

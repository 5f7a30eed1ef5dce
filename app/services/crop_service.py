"""Crop registry: plantings, current bloom stage and stage history."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.crops import Crop, CropStageTransition
from app.models.field import Field
from app.models.phenology import BloomStage, Variety
from app.schemas.crop import CropCreate, CropUpdate

logger = structlog.get_logger("fieldsense.crops")

_NON_NULLABLE_UPDATES = ("field_id", "variety_id", "planted_at")


def crop_load_options() -> tuple[Any, ...]:
	"""Eager loads needed to render a crop with field, variety/species and stage."""
	return (
		selectinload(Crop.field),
		selectinload(Crop.variety).selectinload(Variety.species),
		selectinload(Crop.current_bloom_stage),
	)


class CropService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def plant_crop(self, payload: CropCreate) -> Crop:
		await self._require_field(payload.field_id)
		await self._require_variety(payload.variety_id)
		if payload.current_bloom_stage_id is not None:
			await self.require_stage_of_variety(payload.current_bloom_stage_id, payload.variety_id)

		crop = Crop(
			field_id=payload.field_id,
			variety_id=payload.variety_id,
			current_bloom_stage_id=payload.current_bloom_stage_id,
		)
		if payload.planted_at is not None:
			crop.planted_at = payload.planted_at
		self.db.add(crop)
		await self.db.flush()

		if payload.current_bloom_stage_id is not None:
			self._record_transition(crop.id, None, payload.current_bloom_stage_id)
			await self.db.flush()

		logger.info(
			"crop_planted",
			crop_id=str(crop.id),
			field_id=str(crop.field_id),
			variety_id=str(crop.variety_id),
		)
		return await self.get_crop(crop.id, refresh=True)

	async def list_crops(self) -> list[Crop]:
		stmt = select(Crop).options(*crop_load_options()).order_by(Crop.planted_at.desc())
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def list_field_crops(self, field_id: uuid.UUID) -> list[Crop]:
		stmt = (
			select(Crop)
			.where(Crop.field_id == field_id)
			.options(*crop_load_options())
			.order_by(Crop.planted_at.asc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def get_crop(self, crop_id: uuid.UUID, refresh: bool = False) -> Crop:
		stmt = select(Crop).where(Crop.id == crop_id).options(*crop_load_options())
		if refresh:
			stmt = stmt.execution_options(populate_existing=True)
		row = await self.db.execute(stmt)
		crop = row.scalar_one_or_none()
		if crop is None:
			raise LookupError(f"Crop {crop_id} not found")
		return crop

	async def update_crop(self, crop_id: uuid.UUID, payload: CropUpdate) -> Crop:
		crop = await self.get_crop(crop_id)
		changes = payload.model_dump(exclude_unset=True)
		for key in _NON_NULLABLE_UPDATES:
			if changes.get(key, ...) is None:
				changes.pop(key)

		if "field_id" in changes and changes["field_id"] != crop.field_id:
			await self._require_field(changes["field_id"])

		variety_id = changes.get("variety_id", crop.variety_id)
		variety_changed = variety_id != crop.variety_id
		if variety_changed:
			await self._require_variety(variety_id)

		stage_id = changes.get("current_bloom_stage_id", crop.current_bloom_stage_id)
		if stage_id is not None and (variety_changed or "current_bloom_stage_id" in changes):
			if variety_changed and "current_bloom_stage_id" not in changes:
				raise ValueError(
					"current bloom stage belongs to the previous variety; "
					"supply current_bloom_stage_id together with variety_id"
				)
			await self.require_stage_of_variety(stage_id, variety_id)

		previous_stage_id = crop.current_bloom_stage_id
		for key, value in changes.items():
			setattr(crop, key, value)
		if stage_id != previous_stage_id:
			self._record_transition(crop.id, previous_stage_id, stage_id)

		await self.db.flush()
		return await self.get_crop(crop_id, refresh=True)

	async def advance_stage(self, crop_id: uuid.UUID, bloom_stage_id: uuid.UUID) -> Crop:
		"""Move the current-stage pointer and log the transition."""
		crop = await self.get_crop(crop_id)
		await self.require_stage_of_variety(bloom_stage_id, crop.variety_id)

		previous_stage_id = crop.current_bloom_stage_id
		if previous_stage_id == bloom_stage_id:
			return crop

		crop.current_bloom_stage_id = bloom_stage_id
		self._record_transition(crop.id, previous_stage_id, bloom_stage_id)
		await self.db.flush()
		logger.info(
			"crop_stage_advanced",
			crop_id=str(crop.id),
			from_stage_id=str(previous_stage_id) if previous_stage_id else None,
			to_stage_id=str(bloom_stage_id),
		)
		return await self.get_crop(crop_id, refresh=True)

	async def stage_history(self, crop_id: uuid.UUID) -> list[CropStageTransition]:
		await self.get_crop(crop_id)
		stmt = (
			select(CropStageTransition)
			.where(CropStageTransition.crop_id == crop_id)
			.order_by(CropStageTransition.transitioned_at.asc())
		)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def delete_crop(self, crop_id: uuid.UUID) -> Crop:
		crop = await self.get_crop(crop_id)
		await self.db.delete(crop)
		await self.db.flush()
		logger.info("crop_deleted", crop_id=str(crop_id))
		return crop

	async def require_stage_of_variety(self, stage_id: uuid.UUID, variety_id: uuid.UUID) -> BloomStage:
		row = await self.db.execute(select(BloomStage).where(BloomStage.id == stage_id))
		stage = row.scalar_one_or_none()
		if stage is None:
			raise LookupError(f"Bloom stage {stage_id} not found")
		if stage.variety_id != variety_id:
			raise ValueError(f"bloom stage {stage_id} does not belong to variety {variety_id}")
		return stage

	def _record_transition(
		self,
		crop_id: uuid.UUID,
		from_stage_id: uuid.UUID | None,
		to_stage_id: uuid.UUID | None,
	) -> None:
		self.db.add(
			CropStageTransition(
				crop_id=crop_id,
				from_stage_id=from_stage_id,
				to_stage_id=to_stage_id,
				transitioned_at=datetime.now(UTC),
			)
		)

	async def _require_field(self, field_id: uuid.UUID) -> None:
		row = await self.db.execute(select(Field.id).where(Field.id == field_id))
		if row.scalar_one_or_none() is None:
			raise LookupError(f"Field {field_id} not found")

	async def _require_variety(self, variety_id: uuid.UUID) -> None:
		row = await self.db.execute(select(Variety.id).where(Variety.id == variety_id))
		if row.scalar_one_or_none() is None:
			raise LookupError(f"Variety {variety_id} not found")

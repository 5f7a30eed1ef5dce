"""Pydantic request/response schemas for crops and stage history."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.field import FieldSummary
from app.schemas.phenology import BloomStageRead, VarietyWithSpeciesRead


class CropCreate(BaseModel):
	field_id: uuid.UUID
	variety_id: uuid.UUID
	planted_at: datetime | None = None
	current_bloom_stage_id: uuid.UUID | None = None


class CropUpdate(BaseModel):
	"""Partial update. An explicit ``current_bloom_stage_id: null`` clears the stage."""

	field_id: uuid.UUID | None = None
	variety_id: uuid.UUID | None = None
	planted_at: datetime | None = None
	current_bloom_stage_id: uuid.UUID | None = None


class AdvanceStageRequest(BaseModel):
	bloom_stage_id: uuid.UUID


class CropRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	field_id: uuid.UUID
	variety_id: uuid.UUID
	planted_at: datetime
	current_bloom_stage_id: uuid.UUID | None = None
	created_at: datetime
	updated_at: datetime
	field: FieldSummary
	variety: VarietyWithSpeciesRead
	current_bloom_stage: BloomStageRead | None = None


class CropListRead(BaseModel):
	items: list[CropRead]


class StageTransitionRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	crop_id: uuid.UUID
	from_stage_id: uuid.UUID | None = None
	to_stage_id: uuid.UUID | None = None
	transitioned_at: datetime


class StageHistoryRead(BaseModel):
	crop_id: uuid.UUID
	items: list[StageTransitionRead] = Field(default_factory=list)

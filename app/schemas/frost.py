"""Pydantic schemas for frost-risk assessments."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import FrostRiskEnum


class FrostRiskAssessment(BaseModel):
	crop_id: uuid.UUID
	field_id: uuid.UUID
	bloom_stage_id: uuid.UUID | None = None
	bloom_stage_name: str | None = None
	crit_temp_10: float | None = None
	crit_temp_90: float | None = None
	min_temperature: float | None = None
	min_temperature_at: datetime | None = None
	min_temperature_device: str | None = None
	reading_count: int = 0
	window_start: datetime
	risk: FrostRiskEnum
	reason: str | None = None
	evaluated_at: datetime


class FieldFrostRiskRead(BaseModel):
	field_id: uuid.UUID
	evaluated_at: datetime
	items: list[FrostRiskAssessment] = Field(default_factory=list)

"""Pydantic request/response schemas for fields."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.geo import LATITUDE_RANGE, LONGITUDE_RANGE

_LON_MIN, _LON_MAX = LONGITUDE_RANGE
_LAT_MIN, _LAT_MAX = LATITUDE_RANGE


class FieldCreate(BaseModel):
	name: str = Field(min_length=1, max_length=255)
	is_bio: bool = False
	longitude: float = Field(ge=_LON_MIN, le=_LON_MAX)
	latitude: float = Field(ge=_LAT_MIN, le=_LAT_MAX)
	user_id: uuid.UUID


class FieldUpdate(BaseModel):
	"""Partial update; omitted coordinates keep their stored value."""

	name: str | None = Field(default=None, min_length=1, max_length=255)
	is_bio: bool | None = None
	longitude: float | None = Field(default=None, ge=_LON_MIN, le=_LON_MAX)
	latitude: float | None = Field(default=None, ge=_LAT_MIN, le=_LAT_MAX)
	user_id: uuid.UUID | None = None


class FieldSummary(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	name: str
	is_bio: bool
	user_id: uuid.UUID


class FieldRead(FieldSummary):
	longitude: float
	latitude: float
	created_at: datetime


class FieldListRead(BaseModel):
	items: list[FieldRead]


class FieldDeleted(BaseModel):
	id: uuid.UUID

"""Pydantic schemas for devices, readings and ingest receipts."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, field_validator

from app.models.devices import MAC_LENGTH, MAC_PATTERN
from app.models.enums import DeviceTypeEnum, UpdateIntervalEnum
from app.schemas.field import FieldSummary

MacAddress = Annotated[
	str,
	StringConstraints(min_length=MAC_LENGTH, max_length=MAC_LENGTH, pattern=MAC_PATTERN),
	AfterValidator(str.upper),
]


class DeviceCreate(BaseModel):
	mac: MacAddress
	name: str = Field(min_length=1, max_length=255)
	device_type: DeviceTypeEnum
	update_interval: UpdateIntervalEnum | None = None
	is_active: bool = True
	is_sold: bool = False
	user_id: uuid.UUID
	field_id: uuid.UUID | None = None
	master_mac: MacAddress | None = None


class DeviceUpdate(BaseModel):
	"""Partial update. Explicit nulls detach ``field_id`` / ``master_mac``."""

	name: str | None = Field(default=None, min_length=1, max_length=255)
	device_type: DeviceTypeEnum | None = None
	update_interval: UpdateIntervalEnum | None = None
	is_active: bool | None = None
	is_sold: bool | None = None
	user_id: uuid.UUID | None = None
	field_id: uuid.UUID | None = None
	master_mac: MacAddress | None = None


class ReadingIn(BaseModel):
	timestamp: datetime
	temperature: float
	humidity: float | None = Field(default=None, ge=0, le=100)
	pressure: float | None = None
	battery_value: int | None = Field(default=None, ge=0, le=100)
	tbu: float | None = None
	state: UpdateIntervalEnum | None = None
	error_code: int = 0
	rssi: int | None = None

	@field_validator("timestamp")
	@classmethod
	def _assume_utc(cls, value: datetime) -> datetime:
		# naive timestamps from firmware are UTC
		if value.tzinfo is None:
			return value.replace(tzinfo=UTC)
		return value


class ReadingIngestRequest(BaseModel):
	readings: list[ReadingIn] = Field(min_length=1)


class ReadingRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: int
	device_mac: str
	timestamp: datetime
	temperature: float
	humidity: float | None = None
	pressure: float | None = None
	battery_value: int | None = None
	tbu: float | None = None
	state: UpdateIntervalEnum
	error_code: int
	rssi: int | None = None


class DeviceRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	mac: str
	name: str
	device_type: DeviceTypeEnum
	update_interval: UpdateIntervalEnum | None = None
	is_active: bool
	is_sold: bool
	user_id: uuid.UUID
	field_id: uuid.UUID | None = None
	master_mac: str | None = None
	created_at: datetime
	updated_at: datetime
	field: FieldSummary | None = None


class DeviceDetailRead(DeviceRead):
	slaves: list[DeviceRead] = Field(default_factory=list)
	readings: list[ReadingRead] = Field(default_factory=list)


class DeviceListRead(BaseModel):
	items: list[DeviceRead]


class IngestWarning(BaseModel):
	# position in the submitted batch; None for warnings about the whole batch
	index: int | None = None
	message: str


class IngestReceipt(BaseModel):
	device_mac: str
	status: str
	inserted_count: int = 0
	event_ids: list[int] = Field(default_factory=list)
	timestamp_start: datetime | None = None
	timestamp_end: datetime | None = None
	warnings: list[IngestWarning] = Field(default_factory=list)


class DeviceLivenessRead(BaseModel):
	device_mac: str
	update_interval: UpdateIntervalEnum
	expected_gap: timedelta
	last_reading_at: datetime | None = None
	silent_for: timedelta | None = None
	is_silent: bool
	checked_at: datetime

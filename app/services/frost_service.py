"""Frost-risk evaluation: coldest recent field reading vs. bloom-stage thresholds.

``crit_temp_10`` is the temperature at which 10% of buds are killed,
``crit_temp_90`` the one at which 90% are.  The coldest reading from the
crop's field within the lookback window is compared against both.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.crops import Crop
from app.models.devices import Device, Reading
from app.models.enums import FrostRiskEnum
from app.schemas.frost import FieldFrostRiskRead, FrostRiskAssessment
from app.services.crop_service import CropService
from app.services.field_service import FieldService

logger = structlog.get_logger("fieldsense.frost")


def classify_frost_risk(temperature: float, crit_temp_10: float, crit_temp_90: float) -> FrostRiskEnum:
	# severe is checked first so inverted thresholds never hide a kill-level reading
	if temperature <= crit_temp_90:
		return FrostRiskEnum.severe
	if temperature >= crit_temp_10:
		return FrostRiskEnum.none
	return FrostRiskEnum.partial


@dataclass(slots=True)
class ColdestReading:
	device_mac: str
	temperature: float
	timestamp: datetime
	count: int


class FrostRiskService:
	def __init__(self, db: AsyncSession, lookback: timedelta | None = None):
		self.db = db
		self.lookback = lookback or timedelta(minutes=get_settings().frost_lookback_minutes)

	async def evaluate_crop(self, crop_id: uuid.UUID, now: datetime | None = None) -> FrostRiskAssessment:
		crop = await CropService(self.db).get_crop(crop_id)
		return await self.assess(crop, now or datetime.now(UTC))

	async def evaluate_field(self, field_id: uuid.UUID, now: datetime | None = None) -> FieldFrostRiskRead:
		await FieldService(self.db).get_field(field_id)
		now = now or datetime.now(UTC)
		crops = await CropService(self.db).list_field_crops(field_id)
		items = [await self.assess(crop, now) for crop in crops]
		return FieldFrostRiskRead(field_id=field_id, evaluated_at=now, items=items)

	async def assess(self, crop: Crop, now: datetime) -> FrostRiskAssessment:
		window_start = now - self.lookback
		stage = crop.current_bloom_stage
		base = {
			"crop_id": crop.id,
			"field_id": crop.field_id,
			"window_start": window_start,
			"evaluated_at": now,
		}
		if stage is None:
			return FrostRiskAssessment(
				**base,
				risk=FrostRiskEnum.unknown,
				reason="crop has no current bloom stage",
			)

		base.update(
			bloom_stage_id=stage.id,
			bloom_stage_name=stage.name,
			crit_temp_10=stage.crit_temp_10,
			crit_temp_90=stage.crit_temp_90,
		)
		coldest = await self.coldest_reading(crop.field_id, window_start, now)
		if coldest is None:
			return FrostRiskAssessment(
				**base,
				risk=FrostRiskEnum.unknown,
				reason="no readings from field devices in the lookback window",
			)

		risk = classify_frost_risk(coldest.temperature, stage.crit_temp_10, stage.crit_temp_90)
		if risk != FrostRiskEnum.none:
			logger.warning(
				"frost_risk_detected",
				crop_id=str(crop.id),
				field_id=str(crop.field_id),
				risk=str(risk),
				temperature=coldest.temperature,
				stage=stage.name,
			)
		return FrostRiskAssessment(
			**base,
			min_temperature=coldest.temperature,
			min_temperature_at=coldest.timestamp,
			min_temperature_device=coldest.device_mac,
			reading_count=coldest.count,
			risk=risk,
		)

	async def coldest_reading(
		self,
		field_id: uuid.UUID,
		since: datetime,
		until: datetime,
	) -> ColdestReading | None:
		window = (
			select(Reading.device_mac, Reading.temperature, Reading.timestamp)
			.join(Device, Device.mac == Reading.device_mac)
			.where(
				Device.field_id == field_id,
				Reading.timestamp >= since,
				Reading.timestamp <= until,
			)
		)
		count = (await self.db.execute(select(func.count()).select_from(window.subquery()))).scalar_one()
		if not count:
			return None
		row = (
			await self.db.execute(
				window.order_by(Reading.temperature.asc(), Reading.timestamp.desc()).limit(1)
			)
		).one()
		return ColdestReading(
			device_mac=row.device_mac,
			temperature=row.temperature,
			timestamp=row.timestamp,
			count=int(count),
		)

"""Reading ingestion: validation against device cadence and append-only storage."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.devices import Reading
from app.models.enums import DeviceTypeEnum
from app.schemas.device import IngestReceipt, IngestWarning, ReadingIn
from app.services import cadence
from app.services.device_service import DeviceService

logger = structlog.get_logger("fieldsense.ingest")


class IngestService:
	def __init__(self, db: AsyncSession):
		self.db = db
		self.devices = DeviceService(db)

	async def ingest_readings(self, mac: str, readings: Sequence[ReadingIn]) -> IngestReceipt:
		"""Store a batch of samples for a SLAVE device.

		Samples are inserted in timestamp order.  Duplicated timestamps and
		gaps longer than the tolerated cadence are stored anyway but
		reported as warnings, which turns the receipt status to ``partial``.
		"""
		device = await self.devices.get_device(mac)
		if device.device_type != DeviceTypeEnum.SLAVE:
			raise ValueError(f"device {mac} is a {device.device_type}; only SLAVE devices report readings")

		warnings: list[IngestWarning] = []
		if not device.is_active:
			warnings.append(IngestWarning(index=None, message="device is flagged inactive"))

		tolerance = get_settings().liveness_tolerance_factor
		current_interval = device.update_interval or cadence.DEFAULT_UPDATE_INTERVAL
		previous: datetime | None = await self.devices.latest_reading_at(device.mac)

		rows: list[Reading] = []
		for idx, item in sorted(enumerate(readings), key=lambda pair: pair[1].timestamp):
			state = item.state or current_interval
			if previous is not None:
				if item.timestamp == previous:
					warnings.append(IngestWarning(index=idx, message="duplicate timestamp"))
				elif cadence.gap_exceeds_cadence(previous, item.timestamp, state, tolerance):
					warnings.append(
						IngestWarning(
							index=idx,
							message=f"gap of {item.timestamp - previous} exceeds {state} cadence",
						)
					)
			if previous is None or item.timestamp > previous:
				previous = item.timestamp

			rows.append(
				Reading(
					device_mac=device.mac,
					timestamp=item.timestamp,
					temperature=item.temperature,
					humidity=item.humidity,
					pressure=item.pressure,
					battery_value=item.battery_value,
					tbu=item.tbu,
					state=state,
					error_code=item.error_code,
					rssi=item.rssi,
				)
			)

		self.db.add_all(rows)
		await self.db.flush()
		event_ids = [int(row.id) for row in rows]
		logger.info(
			"readings_ingested",
			mac=device.mac,
			inserted=len(rows),
			warnings=len(warnings),
		)
		return IngestReceipt(
			device_mac=device.mac,
			status="ok" if not warnings else "partial",
			inserted_count=len(rows),
			event_ids=event_ids,
			timestamp_start=rows[0].timestamp if rows else None,
			timestamp_end=rows[-1].timestamp if rows else None,
			warnings=warnings,
		)

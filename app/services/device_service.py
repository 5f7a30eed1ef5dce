"""Device registry: MASTER/SLAVE hierarchy, detail views and liveness."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.models.devices import Device, Reading
from app.models.enums import DeviceTypeEnum, UpdateIntervalEnum
from app.models.field import Field
from app.models.users import User
from app.schemas.device import DeviceCreate, DeviceLivenessRead, DeviceUpdate
from app.services import cadence
from app.services.errors import ConflictError

logger = structlog.get_logger("fieldsense.devices")

_NULLABLE_UPDATES = {"update_interval", "field_id", "master_mac"}


def recent_readings_stmt(mac: str, limit: int) -> Select[Any]:
	return (
		select(Reading)
		.where(Reading.device_mac == mac)
		.order_by(Reading.timestamp.desc())
		.limit(limit)
	)


def slaves_stmt(master_mac: str) -> Select[Any]:
	return (
		select(Device)
		.where(Device.master_mac == master_mac)
		.options(selectinload(Device.field))
		.order_by(Device.mac.asc())
	)


@dataclass(slots=True)
class DeviceDetail:
	device: Device
	slaves: list[Device] = field(default_factory=list)
	readings: list[Reading] = field(default_factory=list)


class DeviceService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def register_device(self, payload: DeviceCreate) -> Device:
		existing = await self.db.execute(select(Device.mac).where(Device.mac == payload.mac))
		if existing.scalar_one_or_none() is not None:
			raise ConflictError(f"Device {payload.mac} already registered")

		await self._require_user(payload.user_id)
		if payload.field_id is not None:
			await self._require_field(payload.field_id)

		interval = self.resolve_interval(payload.device_type, payload.update_interval)
		await self._validate_hierarchy(
			mac=payload.mac,
			device_type=payload.device_type,
			master_mac=payload.master_mac,
			is_sold=payload.is_sold,
			field_id=payload.field_id,
		)

		device = Device(
			mac=payload.mac,
			name=payload.name,
			device_type=payload.device_type,
			update_interval=interval,
			is_active=payload.is_active,
			is_sold=payload.is_sold,
			user_id=payload.user_id,
			field_id=payload.field_id,
			master_mac=payload.master_mac,
		)
		self.db.add(device)
		await self.db.flush()
		logger.info(
			"device_registered",
			mac=device.mac,
			device_type=str(device.device_type),
			master_mac=device.master_mac,
		)
		return await self.get_device(device.mac, refresh=True)

	async def list_devices(self) -> list[Device]:
		stmt = select(Device).options(selectinload(Device.field)).order_by(Device.created_at.desc())
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def get_device(self, mac: str, refresh: bool = False) -> Device:
		stmt = select(Device).where(Device.mac == mac).options(selectinload(Device.field))
		if refresh:
			stmt = stmt.execution_options(populate_existing=True)
		row = await self.db.execute(stmt)
		device = row.scalar_one_or_none()
		if device is None:
			raise LookupError(f"Device {mac} not found")
		return device

	async def get_device_detail(self, mac: str) -> DeviceDetail:
		"""Device with its field, slaves and most recent readings (newest first)."""
		device = await self.get_device(mac)
		slaves = await self.list_slaves(mac)
		limit = get_settings().recent_readings_limit
		rows = await self.db.execute(recent_readings_stmt(mac, limit))
		return DeviceDetail(device=device, slaves=slaves, readings=list(rows.scalars().all()))

	async def list_slaves(self, master_mac: str) -> list[Device]:
		rows = await self.db.execute(slaves_stmt(master_mac))
		return list(rows.scalars().all())

	async def update_device(self, mac: str, payload: DeviceUpdate) -> Device:
		device = await self.get_device(mac)
		changes = payload.model_dump(exclude_unset=True)
		changes = {
			key: value
			for key, value in changes.items()
			if value is not None or key in _NULLABLE_UPDATES
		}

		device_type = changes.get("device_type", device.device_type)
		if device.device_type == DeviceTypeEnum.MASTER and device_type == DeviceTypeEnum.SLAVE:
			if await self.list_slaves(mac):
				raise ValueError(f"master {mac} still has slaves and cannot become a SLAVE")

		if "update_interval" in changes:
			interval = self.resolve_interval(device_type, changes["update_interval"])
		elif device_type == DeviceTypeEnum.SLAVE:
			interval = device.update_interval or cadence.DEFAULT_UPDATE_INTERVAL
		else:
			interval = None
		changes["update_interval"] = interval

		if "user_id" in changes and changes["user_id"] != device.user_id:
			await self._require_user(changes["user_id"])
		field_id = changes.get("field_id", device.field_id)
		if field_id is not None and field_id != device.field_id:
			await self._require_field(field_id)

		await self._validate_hierarchy(
			mac=mac,
			device_type=device_type,
			master_mac=changes.get("master_mac", device.master_mac),
			is_sold=changes.get("is_sold", device.is_sold),
			field_id=field_id,
		)

		for key, value in changes.items():
			setattr(device, key, value)
		await self.db.flush()
		logger.info("device_updated", mac=mac, fields=sorted(changes))
		return await self.get_device(mac, refresh=True)

	async def remove_device(self, mac: str) -> Device:
		"""Delete a device; its readings cascade and its slaves are detached."""
		device = await self.get_device(mac)
		await self.db.delete(device)
		await self.db.flush()
		logger.info("device_removed", mac=mac)
		return device

	async def latest_reading_at(self, mac: str) -> datetime | None:
		row = await self.db.execute(
			select(func.max(Reading.timestamp)).where(Reading.device_mac == mac)
		)
		return row.scalar_one_or_none()

	async def check_liveness(self, mac: str, now: datetime | None = None) -> DeviceLivenessRead:
		device = await self.get_device(mac)
		if device.device_type != DeviceTypeEnum.SLAVE:
			raise ValueError("liveness is only tracked for SLAVE devices")

		now = now or datetime.now(UTC)
		interval = device.update_interval or cadence.DEFAULT_UPDATE_INTERVAL
		tolerance = get_settings().liveness_tolerance_factor
		last_reading_at = await self.latest_reading_at(mac)
		return DeviceLivenessRead(
			device_mac=device.mac,
			update_interval=interval,
			expected_gap=cadence.expected_gap(interval),
			last_reading_at=last_reading_at,
			silent_for=(now - last_reading_at) if last_reading_at is not None else None,
			is_silent=cadence.is_silent(last_reading_at, interval, now, tolerance),
			checked_at=now,
		)

	@staticmethod
	def resolve_interval(
		device_type: DeviceTypeEnum,
		requested: UpdateIntervalEnum | None,
	) -> UpdateIntervalEnum | None:
		if device_type == DeviceTypeEnum.MASTER:
			if requested is not None:
				raise ValueError("update_interval applies to SLAVE devices only")
			return None
		return requested or cadence.DEFAULT_UPDATE_INTERVAL

	async def _validate_hierarchy(
		self,
		*,
		mac: str,
		device_type: DeviceTypeEnum,
		master_mac: str | None,
		is_sold: bool,
		field_id: uuid.UUID | None,
	) -> None:
		if not is_sold and field_id is not None:
			raise ValueError("unsold devices cannot be assigned to a field")
		if not is_sold and master_mac is not None:
			raise ValueError("unsold devices cannot be linked to a master")
		if master_mac is None:
			return
		if device_type == DeviceTypeEnum.MASTER:
			raise ValueError("MASTER devices cannot reference a master_mac")
		if master_mac == mac:
			raise ValueError("a device cannot be its own master")

		row = await self.db.execute(select(Device.device_type).where(Device.mac == master_mac))
		master_type = row.scalar_one_or_none()
		if master_type is None:
			raise ValueError(f"master device {master_mac} does not exist")
		if master_type != DeviceTypeEnum.MASTER:
			raise ValueError(f"device {master_mac} is not a MASTER")

	async def _require_user(self, user_id: uuid.UUID) -> None:
		row = await self.db.execute(select(User.id).where(User.id == user_id))
		if row.scalar_one_or_none() is None:
			raise LookupError(f"User {user_id} not found")

	async def _require_field(self, field_id: uuid.UUID) -> None:
		row = await self.db.execute(select(Field.id).where(Field.id == field_id))
		if row.scalar_one_or_none() is None:
			raise LookupError(f"Field {field_id} not found")

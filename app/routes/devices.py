"""Device registry, reading ingest and liveness routes."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.devices import MAC_PATTERN
from app.routes.errors import map_service_error
from app.schemas.device import (
	DeviceCreate,
	DeviceDetailRead,
	DeviceListRead,
	DeviceLivenessRead,
	DeviceRead,
	DeviceUpdate,
	IngestReceipt,
	ReadingIngestRequest,
	ReadingRead,
)
from app.services.device_service import DeviceDetail, DeviceService
from app.services.ingest_service import IngestService

router = APIRouter(prefix="/devices", tags=["devices"])

_FAILURE = "Unexpected device service failure"
_MAC_RE = re.compile(MAC_PATTERN)


def normalize_mac(mac: str) -> str:
	if not _MAC_RE.match(mac):
		raise HTTPException(
			status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
			detail=f"invalid MAC address {mac!r}",
		)
	return mac.upper()


def _to_detail_read(detail: DeviceDetail) -> DeviceDetailRead:
	base = DeviceRead.model_validate(detail.device)
	return DeviceDetailRead(
		**base.model_dump(),
		slaves=[DeviceRead.model_validate(slave) for slave in detail.slaves],
		readings=[ReadingRead.model_validate(reading) for reading in detail.readings],
	)


@router.post("", response_model=DeviceRead, status_code=status.HTTP_201_CREATED)
async def register_device(payload: DeviceCreate, db: AsyncSession = Depends(get_db)) -> DeviceRead:
	try:
		device = await DeviceService(db).register_device(payload)
		return DeviceRead.model_validate(device)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.get("", response_model=DeviceListRead)
async def list_devices(db: AsyncSession = Depends(get_db)) -> DeviceListRead:
	try:
		devices = await DeviceService(db).list_devices()
		return DeviceListRead(items=[DeviceRead.model_validate(device) for device in devices])
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.get("/{mac}", response_model=DeviceDetailRead)
async def get_device(mac: str = Depends(normalize_mac), db: AsyncSession = Depends(get_db)) -> DeviceDetailRead:
	try:
		detail = await DeviceService(db).get_device_detail(mac)
		return _to_detail_read(detail)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.patch("/{mac}", response_model=DeviceRead)
async def update_device(
	payload: DeviceUpdate,
	mac: str = Depends(normalize_mac),
	db: AsyncSession = Depends(get_db),
) -> DeviceRead:
	try:
		device = await DeviceService(db).update_device(mac, payload)
		return DeviceRead.model_validate(device)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.delete("/{mac}", response_model=DeviceRead)
async def remove_device(mac: str = Depends(normalize_mac), db: AsyncSession = Depends(get_db)) -> DeviceRead:
	try:
		device = await DeviceService(db).remove_device(mac)
		return DeviceRead.model_validate(device)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.post("/{mac}/readings", response_model=IngestReceipt, status_code=status.HTTP_201_CREATED)
async def ingest_readings(
	payload: ReadingIngestRequest,
	mac: str = Depends(normalize_mac),
	db: AsyncSession = Depends(get_db),
) -> IngestReceipt:
	try:
		return await IngestService(db).ingest_readings(mac, payload.readings)
	except Exception as exc:
		raise map_service_error(exc, "ingest failure") from exc


@router.get("/{mac}/liveness", response_model=DeviceLivenessRead)
async def device_liveness(
	mac: str = Depends(normalize_mac),
	db: AsyncSession = Depends(get_db),
) -> DeviceLivenessRead:
	try:
		return await DeviceService(db).check_liveness(mac)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc

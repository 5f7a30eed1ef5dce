"""Crop registry routes, stage transitions and frost-risk lookups."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.routes.errors import map_service_error
from app.schemas.crop import (
	AdvanceStageRequest,
	CropCreate,
	CropListRead,
	CropRead,
	CropUpdate,
	StageHistoryRead,
	StageTransitionRead,
)
from app.schemas.frost import FrostRiskAssessment
from app.services.crop_service import CropService
from app.services.frost_service import FrostRiskService

router = APIRouter(prefix="/crops", tags=["crops"])

_FAILURE = "Unexpected crop service failure"


@router.post("", response_model=CropRead, status_code=status.HTTP_201_CREATED)
async def plant_crop(payload: CropCreate, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).plant_crop(payload)
		return CropRead.model_validate(crop)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.get("", response_model=CropListRead)
async def list_crops(db: AsyncSession = Depends(get_db)) -> CropListRead:
	try:
		crops = await CropService(db).list_crops()
		return CropListRead(items=[CropRead.model_validate(crop) for crop in crops])
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.get("/{crop_id}", response_model=CropRead)
async def get_crop(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).get_crop(crop_id)
		return CropRead.model_validate(crop)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.patch("/{crop_id}", response_model=CropRead)
async def update_crop(
	crop_id: uuid.UUID,
	payload: CropUpdate,
	db: AsyncSession = Depends(get_db),
) -> CropRead:
	try:
		crop = await CropService(db).update_crop(crop_id, payload)
		return CropRead.model_validate(crop)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.delete("/{crop_id}", response_model=CropRead)
async def delete_crop(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> CropRead:
	try:
		crop = await CropService(db).delete_crop(crop_id)
		return CropRead.model_validate(crop)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.post("/{crop_id}/advance-stage", response_model=CropRead)
async def advance_stage(
	crop_id: uuid.UUID,
	payload: AdvanceStageRequest,
	db: AsyncSession = Depends(get_db),
) -> CropRead:
	try:
		crop = await CropService(db).advance_stage(crop_id, payload.bloom_stage_id)
		return CropRead.model_validate(crop)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@router.get("/{crop_id}/stage-history", response_model=StageHistoryRead)
async def stage_history(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> StageHistoryRead:
	try:
		transitions = await CropService(db).stage_history(crop_id)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc
	return StageHistoryRead(
		crop_id=crop_id,
		items=[StageTransitionRead.model_validate(item) for item in transitions],
	)


@router.get("/{crop_id}/frost-risk", response_model=FrostRiskAssessment)
async def crop_frost_risk(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> FrostRiskAssessment:
	try:
		return await FrostRiskService(db).evaluate_crop(crop_id)
	except Exception as exc:
		raise map_service_error(exc, "Unexpected frost evaluation failure") from exc

"""Species / variety / bloom-stage catalog routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.routes.errors import map_service_error
from app.schemas.phenology import (
	BloomStageBulkCreate,
	BloomStageListRead,
	SpeciesCreate,
	SpeciesListRead,
	SpeciesRead,
	VarietyWithSpeciesRead,
)
from app.services.phenology_service import PhenologyService

species_router = APIRouter(prefix="/species", tags=["phenology"])
varieties_router = APIRouter(prefix="/varieties", tags=["phenology"])

_FAILURE = "Unexpected phenology service failure"


def _service(request: Request, db: AsyncSession) -> PhenologyService:
	return PhenologyService(db, getattr(request.app.state, "redis", None))


@species_router.post("", response_model=SpeciesRead, status_code=status.HTTP_201_CREATED)
async def create_species(
	payload: SpeciesCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> SpeciesRead:
	try:
		species = await _service(request, db).create_species(payload)
		return SpeciesRead.model_validate(species)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@species_router.get("", response_model=SpeciesListRead)
async def list_species(request: Request, db: AsyncSession = Depends(get_db)) -> SpeciesListRead:
	try:
		rows = await _service(request, db).list_species()
		return SpeciesListRead(items=[SpeciesRead.model_validate(row) for row in rows])
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@species_router.get("/{species_id}", response_model=SpeciesRead)
async def get_species(
	species_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> SpeciesRead:
	try:
		species = await _service(request, db).get_species(species_id)
		return SpeciesRead.model_validate(species)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@species_router.delete("/{species_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_species(
	species_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> None:
	try:
		await _service(request, db).delete_species(species_id)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@varieties_router.get("/{variety_id}", response_model=VarietyWithSpeciesRead)
async def get_variety(
	variety_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> VarietyWithSpeciesRead:
	try:
		variety = await _service(request, db).get_variety(variety_id)
		return VarietyWithSpeciesRead.model_validate(variety)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc


@varieties_router.get("/{variety_id}/bloom-stages", response_model=BloomStageListRead)
async def list_bloom_stages(
	variety_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> BloomStageListRead:
	try:
		stages = await _service(request, db).list_stages(variety_id)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc
	return BloomStageListRead(variety_id=variety_id, items=stages)


@varieties_router.post(
	"/{variety_id}/bloom-stages",
	response_model=BloomStageListRead,
	status_code=status.HTTP_201_CREATED,
)
async def add_bloom_stages(
	variety_id: uuid.UUID,
	payload: BloomStageBulkCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> BloomStageListRead:
	try:
		stages = await _service(request, db).add_stages(variety_id, payload)
	except Exception as exc:
		raise map_service_error(exc, _FAILURE) from exc
	return BloomStageListRead(variety_id=variety_id, items=stages)

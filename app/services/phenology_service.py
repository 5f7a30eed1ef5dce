"""Phenology catalog service: species, varieties and ordered bloom stages."""

from __future__ import annotations

import json
import uuid

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.models.crops import Crop
from app.models.phenology import BloomStage, Species, Variety
from app.schemas.phenology import (
	BloomStageBulkCreate,
	BloomStageIn,
	BloomStageRead,
	SpeciesCreate,
)
from app.services.errors import ConflictError

logger = structlog.get_logger("fieldsense.phenology")


def stages_cache_key(variety_id: uuid.UUID) -> str:
	return f"variety:{variety_id}:bloom_stages"


class PhenologyService:
	def __init__(self, db: AsyncSession, redis_client: Redis | None = None):
		self.db = db
		self.redis_client = redis_client

	async def create_species(self, payload: SpeciesCreate) -> Species:
		"""Bulk-create a species with its varieties and their bloom stages."""
		row = await self.db.execute(
			select(Species.id).where(Species.scientific_name == payload.scientific_name)
		)
		if row.scalar_one_or_none() is not None:
			raise ConflictError(f"Species {payload.scientific_name!r} already exists")

		species = Species(
			common_name=payload.common_name,
			scientific_name=payload.scientific_name,
			varieties=[
				Variety(
					name=variety.name,
					bloom_stages=[self._to_stage(stage) for stage in variety.bloom_stages],
				)
				for variety in payload.varieties
			],
		)
		self.db.add(species)
		await self.db.flush()
		logger.info(
			"species_created",
			species_id=str(species.id),
			varieties=len(payload.varieties),
			stages=sum(len(variety.bloom_stages) for variety in payload.varieties),
		)
		return await self.get_species(species.id)

	async def list_species(self) -> list[Species]:
		rows = await self.db.execute(select(Species).order_by(Species.common_name.asc()))
		return list(rows.scalars().all())

	async def get_species(self, species_id: uuid.UUID) -> Species:
		row = await self.db.execute(select(Species).where(Species.id == species_id))
		species = row.scalar_one_or_none()
		if species is None:
			raise LookupError(f"Species {species_id} not found")
		return species

	async def delete_species(self, species_id: uuid.UUID) -> uuid.UUID:
		species = await self.get_species(species_id)
		variety_ids = [variety.id for variety in species.varieties]
		if variety_ids:
			planted = await self.db.execute(
				select(Crop.id).where(Crop.variety_id.in_(variety_ids)).limit(1)
			)
			if planted.scalar_one_or_none() is not None:
				raise ConflictError("species has planted crops and cannot be deleted")

		await self.db.delete(species)
		await self.db.flush()
		for variety_id in variety_ids:
			await self._invalidate_stages(variety_id)
		return species_id

	async def get_variety(self, variety_id: uuid.UUID) -> Variety:
		stmt = (
			select(Variety)
			.where(Variety.id == variety_id)
			.options(selectinload(Variety.species))
		)
		row = await self.db.execute(stmt)
		variety = row.scalar_one_or_none()
		if variety is None:
			raise LookupError(f"Variety {variety_id} not found")
		return variety

	async def list_stages(self, variety_id: uuid.UUID) -> list[BloomStageRead]:
		"""Bloom stages of a variety, ascending by stage number."""
		cached = await self._read_cached_stages(variety_id)
		if cached is not None:
			return cached

		await self.get_variety(variety_id)
		stmt = (
			select(BloomStage)
			.where(BloomStage.variety_id == variety_id)
			.order_by(BloomStage.number.asc())
		)
		rows = await self.db.execute(stmt)
		stages = [BloomStageRead.model_validate(stage) for stage in rows.scalars().all()]
		await self._cache_stages(variety_id, stages)
		return stages

	async def add_stages(self, variety_id: uuid.UUID, payload: BloomStageBulkCreate) -> list[BloomStageRead]:
		variety = await self.get_variety(variety_id)
		taken = {stage.number for stage in variety.bloom_stages}
		clashes = sorted(stage.number for stage in payload.stages if stage.number in taken)
		if clashes:
			raise ConflictError(f"bloom stage numbers already used for variety {variety_id}: {clashes}")

		rows = [self._to_stage(stage, variety_id=variety.id) for stage in payload.stages]
		self.db.add_all(rows)
		await self.db.flush()
		await self._invalidate_stages(variety_id)
		return await self.list_stages(variety_id)

	@staticmethod
	def _to_stage(stage: BloomStageIn, variety_id: uuid.UUID | None = None) -> BloomStage:
		row = BloomStage(
			name=stage.name,
			number=stage.number,
			crit_temp_10=stage.crit_temp_10,
			crit_temp_90=stage.crit_temp_90,
		)
		if variety_id is not None:
			row.variety_id = variety_id
		return row

	async def _read_cached_stages(self, variety_id: uuid.UUID) -> list[BloomStageRead] | None:
		if self.redis_client is None:
			return None
		value = await self.redis_client.get(stages_cache_key(variety_id))
		if value is None:
			return None
		return [BloomStageRead(**item) for item in json.loads(value)]

	async def _cache_stages(self, variety_id: uuid.UUID, stages: list[BloomStageRead]) -> None:
		if self.redis_client is None:
			return
		payload = [stage.model_dump(mode="json") for stage in stages]
		ttl = get_settings().phenology_cache_ttl_seconds
		await self.redis_client.setex(stages_cache_key(variety_id), ttl, json.dumps(payload))

	async def _invalidate_stages(self, variety_id: uuid.UUID) -> None:
		if self.redis_client is None:
			return
		await self.redis_client.delete(stages_cache_key(variety_id))

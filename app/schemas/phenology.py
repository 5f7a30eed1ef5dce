"""Pydantic schemas for the species / variety / bloom-stage catalog."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BloomStageIn(BaseModel):
	name: str = Field(min_length=1, max_length=255)
	number: int = Field(ge=0)
	crit_temp_10: float
	crit_temp_90: float


def _reject_duplicate_numbers(stages: list[BloomStageIn]) -> None:
	seen: set[int] = set()
	for stage in stages:
		if stage.number in seen:
			raise ValueError(f"duplicate bloom stage number {stage.number}")
		seen.add(stage.number)


class VarietyIn(BaseModel):
	name: str = Field(min_length=1, max_length=255)
	bloom_stages: list[BloomStageIn] = Field(default_factory=list)

	@model_validator(mode="after")
	def _unique_stage_numbers(self) -> VarietyIn:
		_reject_duplicate_numbers(self.bloom_stages)
		return self


class SpeciesCreate(BaseModel):
	common_name: str = Field(min_length=1, max_length=255)
	scientific_name: str = Field(min_length=1, max_length=255)
	varieties: list[VarietyIn] = Field(default_factory=list)

	@model_validator(mode="after")
	def _unique_variety_names(self) -> SpeciesCreate:
		names = [variety.name for variety in self.varieties]
		if len(names) != len(set(names)):
			raise ValueError("variety names must be unique within a species")
		return self


class BloomStageBulkCreate(BaseModel):
	stages: list[BloomStageIn] = Field(min_length=1)

	@model_validator(mode="after")
	def _unique_stage_numbers(self) -> BloomStageBulkCreate:
		_reject_duplicate_numbers(self.stages)
		return self


class BloomStageRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	variety_id: uuid.UUID
	name: str
	number: int
	crit_temp_10: float
	crit_temp_90: float


class SpeciesSummary(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	common_name: str
	scientific_name: str


class VarietySummary(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	species_id: uuid.UUID
	name: str


class VarietyRead(VarietySummary):
	bloom_stages: list[BloomStageRead] = Field(default_factory=list)

	@field_validator("bloom_stages")
	@classmethod
	def _order_by_number(cls, stages: list[BloomStageRead]) -> list[BloomStageRead]:
		return sorted(stages, key=lambda stage: stage.number)


class VarietyWithSpeciesRead(VarietySummary):
	species: SpeciesSummary


class SpeciesRead(SpeciesSummary):
	varieties: list[VarietyRead] = Field(default_factory=list)


class SpeciesListRead(BaseModel):
	items: list[SpeciesRead]


class BloomStageListRead(BaseModel):
	variety_id: uuid.UUID
	items: list[BloomStageRead]

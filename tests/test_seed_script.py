from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta

import pytest

from app.models.enums import DeviceTypeEnum, UpdateIntervalEnum
from scripts.seed_db import (
    CROPS,
    DEVICES,
    FIELDS,
    SPECIES,
    build_readings,
    fake_mac,
    reading_timestamps,
    species_payload,
)

NOW = datetime(2026, 4, 3, 5, 0, tzinfo=UTC)


def test_fake_mac_is_deterministic() -> None:
    assert fake_mac(1) == "00:00:00:00:00:01"
    assert fake_mac(255) == "00:00:00:00:00:FF"
    assert fake_mac(256) == "00:00:00:00:01:00"


@pytest.mark.parametrize(("interval", "minutes"), [("HIGH", 1), ("NORMAL", 5), ("LOW", 25)])
def test_reading_timestamps_follow_tier_cadence(interval: str, minutes: int) -> None:
    timestamps = reading_timestamps(UpdateIntervalEnum(interval), 4, NOW)

    assert timestamps[-1] == NOW - timedelta(minutes=minutes)
    assert {b - a for a, b in zip(timestamps, timestamps[1:])} == {timedelta(minutes=minutes)}


def test_build_readings_tags_state_and_is_reproducible() -> None:
    first = build_readings(UpdateIntervalEnum.HIGH, 10, NOW, random.Random(42))
    second = build_readings(UpdateIntervalEnum.HIGH, 10, NOW, random.Random(42))

    assert len(first) == 10
    assert {reading.state for reading in first} == {UpdateIntervalEnum.HIGH}
    assert [reading.temperature for reading in first] == [reading.temperature for reading in second]


def test_device_topology_is_consistent() -> None:
    by_seed = {spec.seed: spec for spec in DEVICES}
    field_keys = {key for key, *_ in FIELDS}

    for spec in DEVICES:
        if spec.master_seed is not None:
            master = by_seed[spec.master_seed]
            assert master.device_type == DeviceTypeEnum.MASTER
            assert master.field == spec.field
        if spec.device_type == DeviceTypeEnum.MASTER:
            assert spec.update_interval is None
        if spec.field is not None:
            assert spec.field in field_keys

    spares = [spec for spec in DEVICES if not spec.is_sold]
    assert spares and all(spec.field is None and spec.master_seed is None for spec in spares)


def test_seeded_crops_reference_staged_varieties() -> None:
    stages = {
        variety.name: {stage.number for stage in variety.bloom_stages}
        for spec in SPECIES
        for variety in species_payload(spec).varieties
    }

    for _field, variety, _days, stage_number in CROPS:
        assert variety in stages
        if stage_number is not None:
            assert stage_number in stages[variety]

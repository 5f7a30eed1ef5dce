"""Populate a development database with a realistic orchard/vineyard dataset.

Usage::

    python -m scripts.seed_db            # wipe and seed
    python -m scripts.seed_db --keep     # seed on top of existing rows
    python -m scripts.seed_db --readings 60 --seed 7

Everything except users is written through the service layer, so the seed
exercises the same validation (hierarchy rules, stage/variety membership,
geography encoding) as the API.
"""

from __future__ import annotations

import argparse
import asyncio
import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session_factory, engine
from app.middleware.logging import configure_structured_logging
from app.models.enums import DeviceTypeEnum, UpdateIntervalEnum
from app.models.users import User
from app.schemas.crop import CropCreate
from app.schemas.device import DeviceCreate, ReadingIn
from app.schemas.field import FieldCreate
from app.schemas.phenology import BloomStageIn, SpeciesCreate, VarietyIn
from app.services import cadence
from app.services.crop_service import CropService
from app.services.device_service import DeviceService
from app.services.field_service import FieldService
from app.services.ingest_service import IngestService
from app.services.phenology_service import PhenologyService

logger = structlog.get_logger("fieldsense.seed")

SEEDED_TABLES = (
    "readings",
    "devices",
    "crop_stage_transitions",
    "crops",
    "bloom_stages",
    "varieties",
    "species",
    "fields",
    "users",
)

USERS = [
    {"key": "alice", "name": "Alice Rossi", "email": "alice.rossi@fieldsense.dev", "phone": "+39 333 1111111"},
    {"key": "bob", "name": "Bob Verdi", "email": "bob.verdi@fieldsense.dev", "phone": "+39 333 2222222"},
    {"key": "carla", "name": "Carla Bianchi", "email": "carla.bianchi@fieldsense.dev", "phone": None},
]

# (key, owner, name, longitude, latitude, is_bio)
FIELDS = [
    ("north_orchard", "alice", "North Orchard", 11.1194, 46.0664, True),
    ("south_vineyard", "alice", "South Vineyard", 11.1302, 46.0591, False),
    ("east_greenhouse", "bob", "East Greenhouse", 11.2501, 45.9812, False),
    ("west_field", "bob", "West Field", 11.2389, 45.9760, True),
    ("hillside_grove", "carla", "Hillside Olive Grove", 11.3050, 45.8900, True),
]

# (number, name, crit_temp_10, crit_temp_90)
GOLDEN_DELICIOUS_STAGES = [
    (1, "Dormancy", -10.0, -15.0),
    (2, "Bud Swell", -6.0, -9.0),
    (3, "Green Tip", -4.0, -7.0),
    (4, "Half-inch Green", -2.0, -4.5),
    (5, "Tight Cluster", -2.0, -4.5),
    (6, "Pink", -2.0, -4.0),
    (7, "Full Bloom", -2.0, -3.9),
    (8, "Petal Fall", -2.0, -2.5),
]

PINOT_GRIGIO_STAGES = [
    (1, "Bud Burst", -3.0, -5.0),
    (2, "Leaf Unfolding", -1.5, -3.5),
    (3, "Inflorescence", -1.0, -2.5),
    (4, "Flowering", -0.5, -2.0),
]

SPECIES = [
    {
        "common_name": "Apple",
        "scientific_name": "Malus domestica",
        "varieties": {"Golden Delicious": GOLDEN_DELICIOUS_STAGES, "Fuji": [], "Gala": []},
    },
    {
        "common_name": "Grapevine",
        "scientific_name": "Vitis vinifera",
        "varieties": {"Pinot Grigio": PINOT_GRIGIO_STAGES, "Chardonnay": []},
    },
    {
        "common_name": "Tomato",
        "scientific_name": "Solanum lycopersicum",
        "varieties": {"San Marzano": [], "Datterini": []},
    },
    {
        "common_name": "Common Wheat",
        "scientific_name": "Triticum aestivum",
        "varieties": {"Bologna": []},
    },
    {
        "common_name": "Olive",
        "scientific_name": "Olea europaea",
        "varieties": {"Frantoio": [], "Leccino": []},
    },
]

# (field, variety, planted days ago, current stage number or None)
CROPS = [
    ("north_orchard", "Golden Delicious", 730, 6),
    ("north_orchard", "Fuji", 365, None),
    ("south_vineyard", "Pinot Grigio", 1460, 2),
    ("east_greenhouse", "San Marzano", 60, None),
    ("west_field", "Bologna", 180, None),
    ("hillside_grove", "Frantoio", 3650, None),
]


@dataclass(frozen=True)
class DeviceSpec:
    seed: int
    name: str
    device_type: DeviceTypeEnum
    owner: str
    field: str | None = None
    master_seed: int | None = None
    update_interval: UpdateIntervalEnum | None = None
    is_active: bool = True
    is_sold: bool = True


DEVICES = [
    DeviceSpec(1, "Master Hub - North Orchard", DeviceTypeEnum.MASTER, "alice", "north_orchard"),
    DeviceSpec(2, "Sensor Node A - North Orchard", DeviceTypeEnum.SLAVE, "alice", "north_orchard", 1, UpdateIntervalEnum.NORMAL),
    DeviceSpec(3, "Sensor Node B - North Orchard", DeviceTypeEnum.SLAVE, "alice", "north_orchard", 1, UpdateIntervalEnum.HIGH),
    DeviceSpec(4, "Master Hub - South Vineyard", DeviceTypeEnum.MASTER, "alice", "south_vineyard", is_active=False),
    DeviceSpec(5, "Sensor Node - South Vineyard", DeviceTypeEnum.SLAVE, "alice", "south_vineyard", 4, UpdateIntervalEnum.LOW),
    DeviceSpec(6, "Master Hub - East Greenhouse", DeviceTypeEnum.MASTER, "bob", "east_greenhouse"),
    DeviceSpec(7, "Sensor Node - East Greenhouse", DeviceTypeEnum.SLAVE, "bob", "east_greenhouse", 6, UpdateIntervalEnum.NORMAL),
    # unsold inventory: no field, no master
    DeviceSpec(8, "Spare Slave Unit #8", DeviceTypeEnum.SLAVE, "alice", is_sold=False),
]

LOW_BATTERY_ERROR = 8


def fake_mac(seed: int) -> str:
    """Deterministic MAC address: ``fake_mac(1) == "00:00:00:00:00:01"``."""
    hex_digits = f"{seed:012x}"
    return ":".join(hex_digits[i:i + 2] for i in range(0, 12, 2)).upper()


def reading_timestamps(interval: UpdateIntervalEnum, count: int, now: datetime) -> list[datetime]:
    """``count`` timestamps ending one gap before ``now``, spaced at the tier cadence."""
    gap = cadence.expected_gap(interval)
    return [now - (count - idx) * gap for idx in range(count)]


def build_readings(
    interval: UpdateIntervalEnum,
    count: int,
    now: datetime,
    rng: random.Random,
) -> list[ReadingIn]:
    return [
        ReadingIn(
            timestamp=timestamp,
            temperature=round(rng.uniform(-2.0, 22.0), 2),
            humidity=round(rng.uniform(40.0, 95.0), 2),
            pressure=round(rng.uniform(990.0, 1030.0), 2),
            battery_value=rng.randint(15, 100),
            tbu=round(rng.uniform(0.0, 500.0), 4),
            state=interval,
            error_code=LOW_BATTERY_ERROR if rng.random() < 0.05 else 0,
            rssi=rng.randint(-100, -40),
        )
        for timestamp in reading_timestamps(interval, count, now)
    ]


def species_payload(spec: dict[str, Any]) -> SpeciesCreate:
    return SpeciesCreate(
        common_name=spec["common_name"],
        scientific_name=spec["scientific_name"],
        varieties=[
            VarietyIn(
                name=name,
                bloom_stages=[
                    BloomStageIn(number=number, name=stage, crit_temp_10=c10, crit_temp_90=c90)
                    for number, stage, c10, c90 in stages
                ],
            )
            for name, stages in spec["varieties"].items()
        ],
    )


async def _truncate(session: AsyncSession) -> None:
    await session.execute(text(f"TRUNCATE TABLE {', '.join(SEEDED_TABLES)} CASCADE"))


async def seed(session: AsyncSession, readings_per_slave: int, rng: random.Random) -> dict[str, int]:
    now = datetime.now(UTC)

    users: dict[str, Any] = {}
    for spec in USERS:
        user = User(name=spec["name"], email=spec["email"], phone=spec["phone"])
        session.add(user)
        users[spec["key"]] = user
    await session.flush()

    field_service = FieldService(session)
    fields: dict[str, Any] = {}
    for key, owner, name, longitude, latitude, is_bio in FIELDS:
        record = await field_service.create_field(
            FieldCreate(
                name=name,
                is_bio=is_bio,
                longitude=longitude,
                latitude=latitude,
                user_id=users[owner].id,
            )
        )
        fields[key] = record.id

    phenology = PhenologyService(session)
    varieties: dict[str, Any] = {}
    for spec in SPECIES:
        species = await phenology.create_species(species_payload(spec))
        for variety in species.varieties:
            varieties[variety.name] = variety

    crop_service = CropService(session)
    for field_key, variety_name, days_ago, stage_number in CROPS:
        variety = varieties[variety_name]
        stage_id = None
        if stage_number is not None:
            stage_id = next(stage.id for stage in variety.bloom_stages if stage.number == stage_number)
        await crop_service.plant_crop(
            CropCreate(
                field_id=fields[field_key],
                variety_id=variety.id,
                planted_at=now - timedelta(days=days_ago),
                current_bloom_stage_id=stage_id,
            )
        )

    device_service = DeviceService(session)
    ingest = IngestService(session)
    reading_count = 0
    for spec in DEVICES:
        await device_service.register_device(
            DeviceCreate(
                mac=fake_mac(spec.seed),
                name=spec.name,
                device_type=spec.device_type,
                update_interval=spec.update_interval,
                is_active=spec.is_active,
                is_sold=spec.is_sold,
                user_id=users[spec.owner].id,
                field_id=fields[spec.field] if spec.field else None,
                master_mac=fake_mac(spec.master_seed) if spec.master_seed else None,
            )
        )
        if spec.device_type == DeviceTypeEnum.SLAVE and spec.is_sold and readings_per_slave > 0:
            receipt = await ingest.ingest_readings(
                fake_mac(spec.seed),
                build_readings(spec.update_interval, readings_per_slave, now, rng),
            )
            reading_count += receipt.inserted_count

    return {
        "users": len(USERS),
        "fields": len(FIELDS),
        "species": len(SPECIES),
        "varieties": len(varieties),
        "crops": len(CROPS),
        "devices": len(DEVICES),
        "readings": reading_count,
    }


async def main(keep: bool, readings_per_slave: int, rng_seed: int) -> None:
    configure_structured_logging()
    rng = random.Random(rng_seed)
    async with async_session_factory() as session:
        try:
            if not keep:
                await _truncate(session)
            counts = await seed(session, readings_per_slave, rng)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    await engine.dispose()
    logger.info("seed_complete", **counts)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the FieldSense database.")
    parser.add_argument("--keep", action="store_true", help="do not truncate existing tables")
    parser.add_argument("--readings", type=int, default=30, help="readings per sold slave device")
    parser.add_argument("--seed", type=int, default=42, help="random seed for sample values")
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    asyncio.run(main(args.keep, args.readings, args.seed))

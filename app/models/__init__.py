"""ORM model registry: importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.  Application code can also do::

    from app.models import Field, Crop, Device, Reading, ...
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from app.models.base import (
    Base,
    CreatedAtMixin,
    TimeSeriesMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

# ── Crop registry ───────────────────────────────────────────────────────────
from app.models.crops import Crop, CropStageTransition

# ── Device hierarchy & telemetry ────────────────────────────────────────────
from app.models.devices import Device, Reading

# ── Enums ───────────────────────────────────────────────────────────────────
from app.models.enums import DeviceTypeEnum, FrostRiskEnum, UpdateIntervalEnum

# ── Fields ──────────────────────────────────────────────────────────────────
from app.models.field import Field
from app.models.geo import GeoPoint

# ── Phenology catalog ───────────────────────────────────────────────────────
from app.models.phenology import BloomStage, Species, Variety

# ── Owners ──────────────────────────────────────────────────────────────────
from app.models.users import User

__all__ = [
    # Base & mixins
    "Base",
    "BloomStage",
    "CreatedAtMixin",
    # Crops
    "Crop",
    "CropStageTransition",
    # Devices
    "Device",
    # Enums
    "DeviceTypeEnum",
    # Fields
    "Field",
    "FrostRiskEnum",
    "GeoPoint",
    "Reading",
    # Phenology
    "Species",
    "TimeSeriesMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "UpdateIntervalEnum",
    # Owners
    "User",
    "Variety",
]

"""PostgreSQL-backed enum types for all ORM models.

Each StrEnum maps 1:1 to a PostgreSQL CREATE TYPE ... AS ENUM, except
``FrostRiskEnum`` which is computed and never stored.  Values are upper
case where the hardware firmware reports them that way (device role and
interval tier are echoed back on every reading).
"""

from enum import StrEnum

# ── Device hierarchy ────────────────────────────────────────────────────────


class DeviceTypeEnum(StrEnum):
    """Hardware role: a hub aggregating sensors, or a reporting sensor."""

    MASTER = "MASTER"
    SLAVE = "SLAVE"


class UpdateIntervalEnum(StrEnum):
    """Sampling cadence tier of a slave device (see ``services.cadence``)."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


# ── Derived ─────────────────────────────────────────────────────────────────


class FrostRiskEnum(StrEnum):
    """Frost damage classification against bloom-stage thresholds."""

    none = "none"
    partial = "partial"
    severe = "severe"
    unknown = "unknown"

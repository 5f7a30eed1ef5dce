"""Device hierarchy and telemetry ORM models.

Hardware is identified by MAC address (``AA:BB:CC:DD:EE:FF``).  A SLAVE
sensor points at its MASTER hub through ``master_mac``; the reverse set
("slaves of a master") is never stored, it is an indexed query on
``ix_devices_master_mac``.

``readings`` is append-only: rows are inserted by the ingest service and
never updated.  The ``state`` column records the interval tier that was
active when the sample was taken, which may differ from the device's
current ``update_interval``.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimeSeriesMixin, TimestampMixin
from app.models.enums import DeviceTypeEnum, UpdateIntervalEnum
from app.models.field import Field

MAC_LENGTH = 17
MAC_PATTERN = r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$"

# ═══════════════════════════════════════════════════════════════════════════
# Device
# ═══════════════════════════════════════════════════════════════════════════


class Device(Base, TimestampMixin):
    """A MASTER hub or SLAVE sensor owned by a user."""

    __tablename__ = "devices"
    __table_args__ = (
        Index("ix_devices_master_mac", "master_mac"),
        Index("ix_devices_field_id", "field_id"),
        Index("ix_devices_user_id", "user_id"),
    )

    mac: Mapped[str] = mapped_column(String(MAC_LENGTH), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    device_type: Mapped[DeviceTypeEnum] = mapped_column(
        Enum(
            DeviceTypeEnum,
            name="device_type",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
    )
    update_interval: Mapped[UpdateIntervalEnum | None] = mapped_column(
        Enum(
            UpdateIntervalEnum,
            name="update_interval",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )
    is_sold: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    field_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fields.id", ondelete="SET NULL"),
        nullable=True,
    )
    master_mac: Mapped[str | None] = mapped_column(
        String(MAC_LENGTH),
        ForeignKey("devices.mac", ondelete="SET NULL"),
        nullable=True,
    )

    # ── Relationships ────────────────────────────────────────────────────
    field: Mapped[Field | None] = relationship(
        back_populates="devices",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<Device mac={self.mac} type={self.device_type} "
            f"master={self.master_mac}>"
        )


# ═══════════════════════════════════════════════════════════════════════════
# Reading
# ═══════════════════════════════════════════════════════════════════════════


class Reading(Base, TimeSeriesMixin):
    """Environmental sample reported by a slave device."""

    __tablename__ = "readings"
    __table_args__ = (
        Index("ix_readings_device_ts", "device_mac", "timestamp"),
    )

    device_mac: Mapped[str] = mapped_column(
        String(MAC_LENGTH),
        ForeignKey("devices.mac", ondelete="CASCADE"),
        nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float | None] = mapped_column(Float, nullable=True)
    pressure: Mapped[float | None] = mapped_column(Float, nullable=True)
    battery_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tbu: Mapped[float | None] = mapped_column(Float, nullable=True)
    state: Mapped[UpdateIntervalEnum] = mapped_column(
        Enum(
            UpdateIntervalEnum,
            name="update_interval",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
    )
    error_code: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    rssi: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Reading id={self.id} device={self.device_mac} "
            f"ts={self.timestamp} temp={self.temperature}>"
        )

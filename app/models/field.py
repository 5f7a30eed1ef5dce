"""Field ORM model: a named, geolocated growing area owned by one user.

``gps_coords`` is mapped deferred with raiseload: the ORM never reads the
raw geography value.  Services select decoded longitude/latitude columns
through ``app.models.geo`` instead.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from geoalchemy2 import Geography
from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin
from app.models.geo import WGS84_SRID

if TYPE_CHECKING:
    from app.models.crops import Crop
    from app.models.devices import Device


class Field(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """An agricultural field with an organic flag and a WGS84 point."""

    __tablename__ = "fields"
    __table_args__ = (
        Index("ix_fields_user_id", "user_id"),
        Index("ix_fields_created_at", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_bio: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    gps_coords: Mapped[Any] = mapped_column(
        Geography(geometry_type="POINT", srid=WGS84_SRID),
        nullable=False,
        deferred=True,
        deferred_raiseload=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Relationships ────────────────────────────────────────────────────
    crops: Mapped[list[Crop]] = relationship(
        back_populates="field",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )
    devices: Mapped[list[Device]] = relationship(
        back_populates="field",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Field id={self.id} name={self.name!r} user={self.user_id}>"

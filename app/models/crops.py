"""Crop ORM models: planting events and their bloom-stage transition log.

A ``Crop`` ties a variety to a field and points at its current bloom
stage.  The pointer is moved externally during the season; each move is
also appended to ``crop_stage_transitions`` so stage history does not
have to be reconstructed from report timestamps.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.field import Field
from app.models.phenology import BloomStage, Variety


class Crop(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A variety planted on a field at a given date.

    ``current_bloom_stage_id`` must reference a stage of ``variety_id``;
    the service layer enforces it on every write.
    """

    __tablename__ = "crops"
    __table_args__ = (
        Index("ix_crops_field_id", "field_id"),
        Index("ix_crops_variety_id", "variety_id"),
    )

    field_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fields.id", ondelete="CASCADE"),
        nullable=False,
    )
    variety_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("varieties.id", ondelete="RESTRICT"),
        nullable=False,
    )
    planted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    current_bloom_stage_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bloom_stages.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ── Relationships ────────────────────────────────────────────────────
    field: Mapped[Field] = relationship(back_populates="crops", lazy="selectin")
    variety: Mapped[Variety] = relationship(back_populates="crops", lazy="selectin")
    current_bloom_stage: Mapped[BloomStage | None] = relationship(lazy="selectin")
    transitions: Mapped[list[CropStageTransition]] = relationship(
        back_populates="crop",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CropStageTransition.transitioned_at",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return (
            f"<Crop id={self.id} field={self.field_id} variety={self.variety_id} "
            f"stage={self.current_bloom_stage_id}>"
        )


class CropStageTransition(Base, UUIDPrimaryKeyMixin):
    """Append-only record of one current-stage change."""

    __tablename__ = "crop_stage_transitions"
    __table_args__ = (
        Index("ix_crop_stage_transitions_crop_ts", "crop_id", "transitioned_at"),
    )

    crop_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crops.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_stage_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bloom_stages.id", ondelete="SET NULL"),
        nullable=True,
    )
    to_stage_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bloom_stages.id", ondelete="SET NULL"),
        nullable=True,
    )
    transitioned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    crop: Mapped[Crop] = relationship(back_populates="transitions")

    def __repr__(self) -> str:
        return (
            f"<CropStageTransition crop={self.crop_id} "
            f"{self.from_stage_id} -> {self.to_stage_id}>"
        )

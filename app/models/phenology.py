"""Phenology catalog ORM models: Species → Variety → BloomStage.

Reference data written administratively in bulk.  Each variety owns an
ordered set of bloom stages; ``number`` defines the canonical order and is
unique within a variety.  ``crit_temp_10`` / ``crit_temp_90`` are the air
temperatures (°C) expected to kill 10 % / 90 % of buds or blossoms at that
stage.  ``crit_temp_90`` is normally the colder of the two, but published
tables occasionally break that, so no ordering constraint is declared.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.crops import Crop

# ═══════════════════════════════════════════════════════════════════════════
# Species
# ═══════════════════════════════════════════════════════════════════════════


class Species(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A plant species, e.g. Malus domestica."""

    __tablename__ = "species"

    common_name: Mapped[str] = mapped_column(String(255), nullable=False)
    scientific_name: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )

    # ── Relationships ────────────────────────────────────────────────────
    varieties: Mapped[list[Variety]] = relationship(
        back_populates="species",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Variety.name",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Species id={self.id} name={self.scientific_name!r}>"


# ═══════════════════════════════════════════════════════════════════════════
# Variety
# ═══════════════════════════════════════════════════════════════════════════


class Variety(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A cultivar of one species, carrying its own bloom-stage table."""

    __tablename__ = "varieties"
    __table_args__ = (
        UniqueConstraint("species_id", "name", name="uq_varieties_species_name"),
        Index("ix_varieties_species_id", "species_id"),
    )

    species_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("species.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Relationships ────────────────────────────────────────────────────
    species: Mapped[Species] = relationship(back_populates="varieties")
    bloom_stages: Mapped[list[BloomStage]] = relationship(
        back_populates="variety",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BloomStage.number",
        lazy="selectin",
    )
    crops: Mapped[list[Crop]] = relationship(
        back_populates="variety",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Variety id={self.id} name={self.name!r} species={self.species_id}>"


# ═══════════════════════════════════════════════════════════════════════════
# BloomStage
# ═══════════════════════════════════════════════════════════════════════════


class BloomStage(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One phenological stage of a variety with its frost-kill thresholds."""

    __tablename__ = "bloom_stages"
    __table_args__ = (
        UniqueConstraint("variety_id", "number", name="uq_bloom_stages_variety_number"),
    )

    variety_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("varieties.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    crit_temp_10: Mapped[float] = mapped_column(Float, nullable=False)
    crit_temp_90: Mapped[float] = mapped_column(Float, nullable=False)

    # ── Relationships ────────────────────────────────────────────────────
    variety: Mapped[Variety] = relationship(back_populates="bloom_stages")

    def __repr__(self) -> str:
        return (
            f"<BloomStage id={self.id} variety={self.variety_id} "
            f"number={self.number} name={self.name!r}>"
        )

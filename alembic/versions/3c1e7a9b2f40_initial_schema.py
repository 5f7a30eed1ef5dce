"""initial_schema

Revision ID: 3c1e7a9b2f40
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the FieldSense schema: users, fields (PostGIS geography point),
the species → variety → bloom stage catalog, crops with their stage
transition log, the MASTER/SLAVE device tree and the readings time
series.  Enables the postgis and uuid-ossp extensions when missing.
"""

from collections.abc import Sequence

import geoalchemy2
import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c1e7a9b2f40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# ── Enum type names (PostgreSQL CREATE TYPE) ────────────────────────────────
ENUM_DEVICE_TYPE = postgresql.ENUM(
    "MASTER", "SLAVE", name="device_type", create_type=False
)
ENUM_UPDATE_INTERVAL = postgresql.ENUM(
    "LOW", "NORMAL", "HIGH", name="update_interval", create_type=False
)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("uuid_generate_v4()"),
        nullable=False,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    # ── 0. Extensions ───────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # ── 1. Create enum types ────────────────────────────────────────────
    ENUM_DEVICE_TYPE.create(op.get_bind(), checkfirst=True)
    ENUM_UPDATE_INTERVAL.create(op.get_bind(), checkfirst=True)

    # ── 2. Owners and fields ────────────────────────────────────────────

    # users
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # fields
    op.create_table(
        "fields",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "is_bio",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column(
            "gps_coords",
            geoalchemy2.types.Geography(
                geometry_type="POINT",
                srid=4326,
                spatial_index=False,
                from_text="ST_GeogFromText",
            ),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_fields_user_id", "fields", ["user_id"])
    op.create_index("ix_fields_created_at", "fields", ["created_at"])
    op.create_index(
        "idx_fields_gps_coords",
        "fields",
        ["gps_coords"],
        postgresql_using="gist",
    )

    # ── 3. Phenology catalog ────────────────────────────────────────────

    # species
    op.create_table(
        "species",
        _uuid_pk(),
        sa.Column("common_name", sa.String(255), nullable=False),
        sa.Column("scientific_name", sa.String(255), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("scientific_name"),
    )

    # varieties
    op.create_table(
        "varieties",
        _uuid_pk(),
        sa.Column("species_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["species_id"], ["species.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("species_id", "name", name="uq_varieties_species_name"),
    )
    op.create_index("ix_varieties_species_id", "varieties", ["species_id"])

    # bloom_stages
    op.create_table(
        "bloom_stages",
        _uuid_pk(),
        sa.Column("variety_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("crit_temp_10", sa.Float(), nullable=False),
        sa.Column("crit_temp_90", sa.Float(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["variety_id"], ["varieties.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("variety_id", "number", name="uq_bloom_stages_variety_number"),
    )

    # ── 4. Crops and stage history ──────────────────────────────────────

    # crops
    op.create_table(
        "crops",
        _uuid_pk(),
        sa.Column("field_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("variety_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "planted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "current_bloom_stage_id",
            postgresql.UUID(as_uuid=True),
            nullable=True,
        ),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["field_id"], ["fields.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["variety_id"], ["varieties.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["current_bloom_stage_id"], ["bloom_stages.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_crops_field_id", "crops", ["field_id"])
    op.create_index("ix_crops_variety_id", "crops", ["variety_id"])

    # crop_stage_transitions
    op.create_table(
        "crop_stage_transitions",
        _uuid_pk(),
        sa.Column("crop_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("from_stage_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("to_stage_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "transitioned_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["crop_id"], ["crops.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["from_stage_id"], ["bloom_stages.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["to_stage_id"], ["bloom_stages.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_crop_stage_transitions_crop_ts",
        "crop_stage_transitions",
        ["crop_id", "transitioned_at"],
    )

    # ── 5. Devices and readings ─────────────────────────────────────────

    # devices
    op.create_table(
        "devices",
        sa.Column("mac", sa.String(17), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("device_type", ENUM_DEVICE_TYPE, nullable=False),
        sa.Column("update_interval", ENUM_UPDATE_INTERVAL, nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        sa.Column(
            "is_sold",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("field_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("master_mac", sa.String(17), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["field_id"], ["fields.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["master_mac"], ["devices.mac"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("mac"),
    )
    op.create_index("ix_devices_master_mac", "devices", ["master_mac"])
    op.create_index("ix_devices_field_id", "devices", ["field_id"])
    op.create_index("ix_devices_user_id", "devices", ["user_id"])

    # readings
    op.create_table(
        "readings",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("device_mac", sa.String(17), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("temperature", sa.Float(), nullable=False),
        sa.Column("humidity", sa.Float(), nullable=True),
        sa.Column("pressure", sa.Float(), nullable=True),
        sa.Column("battery_value", sa.Integer(), nullable=True),
        sa.Column("tbu", sa.Float(), nullable=True),
        sa.Column("state", ENUM_UPDATE_INTERVAL, nullable=False),
        sa.Column(
            "error_code",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
        sa.Column("rssi", sa.Integer(), nullable=True),
        sa.Column(
            "ingested_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["device_mac"], ["devices.mac"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_readings_device_ts", "readings", ["device_mac", "timestamp"])


def downgrade() -> None:
    # ── Drop tables in reverse dependency order ─────────────────────────
    op.drop_table("readings")
    op.drop_table("devices")
    op.drop_table("crop_stage_transitions")
    op.drop_table("crops")
    op.drop_table("bloom_stages")
    op.drop_table("varieties")
    op.drop_table("species")
    op.drop_table("fields")
    op.drop_table("users")

    # ── Drop enum types ─────────────────────────────────────────────────
    ENUM_UPDATE_INTERVAL.drop(op.get_bind(), checkfirst=True)
    ENUM_DEVICE_TYPE.drop(op.get_bind(), checkfirst=True)

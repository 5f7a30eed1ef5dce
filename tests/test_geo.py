from __future__ import annotations

import math
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from app.models.field import Field
from app.models.geo import GeoPoint, decode_latitude, decode_longitude, encode_point


def _sql(statement: object) -> str:
    return str(
        statement.compile(  # type: ignore[attr-defined]
            dialect=postgresql.dialect(),
            compile_kwargs={"literal_binds": True},
        )
    )


def test_geopoint_accepts_bounds() -> None:
    assert GeoPoint(longitude=180.0, latitude=-90.0).longitude == 180.0
    assert GeoPoint(longitude=-180.0, latitude=90.0).latitude == 90.0


@pytest.mark.parametrize(
    ("longitude", "latitude"),
    [(200.0, 46.0), (11.0, -91.0), (math.nan, 46.0), (11.0, math.inf)],
)
def test_geopoint_rejects_invalid_coordinates(longitude: float, latitude: float) -> None:
    with pytest.raises(ValueError):
        GeoPoint(longitude=longitude, latitude=latitude)


def test_geopoint_rejects_foreign_srid() -> None:
    with pytest.raises(ValueError, match="SRID"):
        GeoPoint(longitude=11.0, latitude=46.0, srid=3857)


def test_with_updates_keeps_omitted_components() -> None:
    point = GeoPoint(longitude=11.1194, latitude=46.0664)

    moved = point.with_updates(latitude=46.5)

    assert moved.longitude == 11.1194
    assert moved.latitude == 46.5
    assert point.with_updates() == point


def test_from_row_uses_decoded_columns() -> None:
    row = SimpleNamespace(longitude=11.1302, latitude=46.0591)
    assert GeoPoint.from_row(row) == GeoPoint(longitude=11.1302, latitude=46.0591)


def test_encode_point_builds_geography_expression() -> None:
    sql = _sql(encode_point(GeoPoint(longitude=11.1194, latitude=46.0664)))

    assert "ST_SetSRID(ST_MakePoint(11.1194, 46.0664), 4326)" in sql
    assert "geography(POINT,4326)" in sql


def test_decode_projects_x_and_y_from_geometry_cast() -> None:
    sql = _sql(select(decode_longitude(Field.gps_coords), decode_latitude(Field.gps_coords)))

    assert "ST_X(CAST(fields.gps_coords AS geometry))" in sql
    assert "ST_Y(CAST(fields.gps_coords AS geometry))" in sql
    assert "AS longitude" in sql
    assert "AS latitude" in sql

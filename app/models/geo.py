"""Point geolocation value type and its storage-boundary codec.

The ``fields.gps_coords`` column is a PostGIS ``geography(POINT, 4326)``.
The ORM never loads that column (it is mapped deferred with raiseload);
every write goes through :func:`encode_point` and every read projects the
stored value back to plain numbers with :func:`decode_longitude` /
:func:`decode_latitude`:

    write:  ST_SetSRID(ST_MakePoint(lon, lat), 4326)::geography
    read:   ST_X(gps_coords::geometry), ST_Y(gps_coords::geometry)

Longitude always comes first, matching PostGIS axis order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from geoalchemy2 import Geography, Geometry
from sqlalchemy import Float, Integer, cast, func, literal
from sqlalchemy.sql.elements import ColumnElement

WGS84_SRID = 4326

LONGITUDE_RANGE = (-180.0, 180.0)
LATITUDE_RANGE = (-90.0, 90.0)

# Untyped "geometry" cast target; a typmod here would pin the SRID.
_PLAIN_GEOMETRY = Geometry(geometry_type=None)


def validate_coordinates(longitude: float, latitude: float) -> None:
    if not (math.isfinite(longitude) and math.isfinite(latitude)):
        raise ValueError("coordinates must be finite numbers")
    low, high = LONGITUDE_RANGE
    if not low <= longitude <= high:
        raise ValueError(f"longitude {longitude} outside [{low}, {high}]")
    low, high = LATITUDE_RANGE
    if not low <= latitude <= high:
        raise ValueError(f"latitude {latitude} outside [{low}, {high}]")


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 point. Construction validates coordinate bounds."""

    longitude: float
    latitude: float
    srid: int = WGS84_SRID

    def __post_init__(self) -> None:
        if self.srid != WGS84_SRID:
            raise ValueError(f"unsupported SRID {self.srid}; only {WGS84_SRID} is stored")
        validate_coordinates(self.longitude, self.latitude)

    def with_updates(self, longitude: float | None = None, latitude: float | None = None) -> GeoPoint:
        """Return a copy where omitted components keep their current value."""
        return GeoPoint(
            longitude=self.longitude if longitude is None else longitude,
            latitude=self.latitude if latitude is None else latitude,
            srid=self.srid,
        )

    @classmethod
    def from_row(cls, row: Any) -> GeoPoint:
        """Build from any object exposing decoded ``longitude``/``latitude``."""
        return cls(longitude=float(row.longitude), latitude=float(row.latitude))


def encode_point(point: GeoPoint) -> ColumnElement[Any]:
    """SQL expression constructing the geography value for ``point``."""
    made = func.ST_MakePoint(
        literal(point.longitude, Float),
        literal(point.latitude, Float),
        type_=Geometry(geometry_type="POINT"),
    )
    tagged = func.ST_SetSRID(made, literal(point.srid, Integer), type_=Geometry(geometry_type="POINT", srid=point.srid))
    return cast(tagged, Geography(geometry_type="POINT", srid=point.srid))


def decode_longitude(column: Any) -> ColumnElement[float]:
    return func.ST_X(cast(column, _PLAIN_GEOMETRY), type_=Float).label("longitude")


def decode_latitude(column: Any) -> ColumnElement[float]:
    return func.ST_Y(cast(column, _PLAIN_GEOMETRY), type_=Float).label("latitude")

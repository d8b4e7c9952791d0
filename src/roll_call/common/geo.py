from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from ..core.exceptions import InvalidInput
from .validators import optional_float

EARTH_RADIUS_METERS = 6_371_000.0


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Geofence:
    latitude: float
    longitude: float
    radius_meters: float

    @property
    def center(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude, "radius_meters": self.radius_meters}


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Great-circle (haversine) distance between two points."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(h))


def _check_range(lat: float, lon: float) -> None:
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise InvalidInput("Coordinates out of range")


def parse_coordinates(data: Any) -> Optional[Coordinates]:
    if not data:
        return None
    if not isinstance(data, dict):
        raise InvalidInput("location must be an object")
    lat = optional_float(data.get("latitude"), "latitude")
    lon = optional_float(data.get("longitude"), "longitude")
    if lat is None or lon is None:
        raise InvalidInput("location requires latitude and longitude")
    _check_range(lat, lon)
    return Coordinates(latitude=lat, longitude=lon)


def parse_geofence(data: Any) -> Optional[Geofence]:
    if not data:
        return None
    point = parse_coordinates(data)
    radius = optional_float(data.get("radius_meters"), "radius_meters")
    if radius is None or radius <= 0:
        raise InvalidInput("radius_meters must be a positive number")
    return Geofence(latitude=point.latitude, longitude=point.longitude, radius_meters=radius)

"""
Purpose: Geographic primitives for the dispatch engine.
What it does:
Parses loosely-typed coordinates into GeoPoints, computes great-circle (Haversine)
distances, and converts a distance into a min/average/max travel-time estimate
for a given travel mode.

Rule: an unresolved location is `None`, never a sentinel coordinate. Every
function here answers `None` ("unknown") instead of raising on bad geography.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

# Mean Earth radius in meters.
EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    @classmethod
    def parse(cls, value: Any) -> Optional[GeoPoint]:
        """
        Accepts a GeoPoint, a (lat, lon) pair or a {"lat", "lng"|"lon"} mapping.
        Returns None for anything malformed or out of range.
        """
        if value is None:
            return None
        if isinstance(value, GeoPoint):
            lat, lon = value.lat, value.lon
        elif isinstance(value, dict):
            lat = value.get("lat", value.get("latitude"))
            lon = value.get("lng", value.get("lon", value.get("longitude")))
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            lat, lon = value
        else:
            return None

        try:
            lat = float(lat)
            lon = float(lon)
        except (TypeError, ValueError):
            return None

        if math.isnan(lat) or math.isnan(lon):
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        return cls(lat, lon)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lon)


def distance_m(a: Any, b: Any) -> Optional[float]:
    """
    Great-circle distance in meters between two points.
    Either point may be a GeoPoint or anything GeoPoint.parse accepts.
    Returns None when either point is unknown or malformed.
    """
    p1 = GeoPoint.parse(a)
    p2 = GeoPoint.parse(b)
    if p1 is None or p2 is None:
        return None

    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    d_phi = math.radians(p2.lat - p1.lat)
    d_lambda = math.radians(p2.lon - p1.lon)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Clamp guards asin against float drift above 1.0 for antipodal points.
    c = 2 * math.asin(min(1.0, math.sqrt(h)))
    return EARTH_RADIUS_M * c


def distance_km(a: Any, b: Any) -> Optional[float]:
    meters = distance_m(a, b)
    return None if meters is None else meters / 1000.0


class TravelMode(str, Enum):
    CAR = "car"
    PUBLIC = "public"
    BIKE = "bike"

    @classmethod
    def parse(cls, value: Any) -> TravelMode:
        if isinstance(value, TravelMode):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown travel mode: {value!r}") from None


@dataclass(frozen=True)
class SpeedProfile:
    """Urban speeds in km/h."""
    min_kmh: float
    average_kmh: float
    max_kmh: float


SPEED_TABLE: Dict[TravelMode, SpeedProfile] = {
    TravelMode.CAR: SpeedProfile(min_kmh=15, average_kmh=25, max_kmh=40),
    TravelMode.PUBLIC: SpeedProfile(min_kmh=15, average_kmh=20, max_kmh=30),
    TravelMode.BIKE: SpeedProfile(min_kmh=10, average_kmh=15, max_kmh=25),
}


@dataclass(frozen=True)
class TravelTime:
    """Whole minutes. `min_minutes` is the best case (fastest speed)."""
    min_minutes: int
    average_minutes: int
    max_minutes: int

    @classmethod
    def zero(cls) -> TravelTime:
        return cls(0, 0, 0)

    def __add__(self, other: TravelTime) -> TravelTime:
        return TravelTime(
            self.min_minutes + other.min_minutes,
            self.average_minutes + other.average_minutes,
            self.max_minutes + other.max_minutes,
        )


def estimate_travel_time(meters: Optional[float], mode: Any = TravelMode.CAR) -> Optional[TravelTime]:
    """
    Converts a distance into {min, average, max} minutes for the travel mode.
    Unknown, negative or NaN distances return None. An unknown mode raises ValueError.
    """
    profile = SPEED_TABLE[TravelMode.parse(mode)]

    if meters is None:
        return None
    try:
        meters = float(meters)
    except (TypeError, ValueError):
        return None
    if math.isnan(meters) or meters < 0:
        return None

    km = meters / 1000.0
    return TravelTime(
        min_minutes=_minutes(km, profile.max_kmh),
        average_minutes=_minutes(km, profile.average_kmh),
        max_minutes=_minutes(km, profile.min_kmh),
    )


# ---- Internal helpers ----

def _minutes(km: float, kmh: float) -> int:
    # Half-up rounding, not banker's rounding.
    return int(math.floor(km / kmh * 60 + 0.5))

"""Great-circle distance between two coordinates."""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float


def distance_km(a, b) -> float:
    """Haversine distance in kilometres, rounded to 4 decimal places.

    ``a`` and ``b`` are anything exposing ``lat`` and ``lng``. NaN input
    yields NaN; guarding against it is the caller's job.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_KM * c, 4)

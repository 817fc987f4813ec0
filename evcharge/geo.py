"""Great-circle distance and bounding-box helpers."""
from __future__ import annotations

import math

from .models import BoundingBox, Coordinate

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371
MILES_PER_DEGREE_LAT = 69.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Approximate distance in kilometers between two WGS84 coordinates."""
    lat1, lon1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lng)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    hav = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(hav), math.sqrt(1 - hav))


def km_to_miles(km: float) -> float:
    return km * KM_TO_MILES


def bounding_box(center: Coordinate, radius_miles: float) -> BoundingBox:
    """Box of roughly ``radius_miles`` around ``center``.

    Longitude degrees shrink with latitude, so the east/west extent is scaled by
    ``cos(latitude)``.
    """
    lat_degrees = radius_miles / MILES_PER_DEGREE_LAT
    lon_degrees = radius_miles / (MILES_PER_DEGREE_LAT * math.cos(math.radians(center.lat)))
    return BoundingBox(
        north=center.lat + lat_degrees,
        south=center.lat - lat_degrees,
        east=center.lng + lon_degrees,
        west=center.lng - lon_degrees,
    )

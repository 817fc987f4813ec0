"""Elevation enrichment for routes (Open-Meteo elevation API).

Elevation is advisory: ``ElevationClient.enrich`` never raises, it attaches an
``ElevationProfile`` carrying either the ascent/descent totals or the error.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .client import ProviderClient
from .errors import ApiError, EVChargeError
from .models import ElevationProfile, RouteResult

MAX_ELEVATION_SAMPLES = 15
NOTABLE_ELEVATION_CHANGE_M = 100.0
NOT_ENOUGH_DATA_MESSAGE = "Not enough data for elevation change calculation."

logger = logging.getLogger(__name__)


def sample_route_coordinates(geometry: Sequence[Sequence[float]]) -> List[Tuple[float, float]]:
    """Downsample ``[lon, lat]`` vertices to at most 15 ``(lat, lon)`` points.

    Uses a fixed stride of ``N // 14`` and always keeps the final vertex.
    """
    points = [(float(lat), float(lon)) for lon, lat, *_ in geometry]
    if len(points) <= MAX_ELEVATION_SAMPLES:
        return points
    stride = len(points) // (MAX_ELEVATION_SAMPLES - 1)
    sampled = points[::stride][: MAX_ELEVATION_SAMPLES - 1]
    sampled.append(points[-1])
    return sampled


def calculate_elevation_changes(elevations: Sequence[float]) -> ElevationProfile:
    if len(elevations) < 2:
        return ElevationProfile(sampled_elevations=list(elevations), message=NOT_ENOUGH_DATA_MESSAGE)

    total_ascent = 0.0
    total_descent = 0.0
    for previous, current in zip(elevations, elevations[1:]):
        diff = current - previous
        if diff > 0:
            total_ascent += diff
        else:
            total_descent += abs(diff)
    return ElevationProfile(total_ascent=total_ascent, total_descent=total_descent, sampled_elevations=list(elevations))


def describe_elevation(profile: Optional[ElevationProfile]) -> Optional[str]:
    """User-facing sentence for the route's elevation, if there is one to show."""
    if profile is None or profile.error:
        return None
    if profile.message:
        return profile.message
    climbs = profile.total_ascent > NOTABLE_ELEVATION_CHANGE_M
    drops = profile.total_descent > NOTABLE_ELEVATION_CHANGE_M
    if climbs and drops:
        return f"Hilly route: about {profile.total_ascent:.0f} m of climbing and {profile.total_descent:.0f} m of descent."
    if climbs:
        return f"Notable climb: about {profile.total_ascent:.0f} m of total ascent. Expect higher energy use."
    if drops:
        return f"Notable descent: about {profile.total_descent:.0f} m downhill. Regenerative braking may recover some charge."
    return "Mostly flat route."


class ElevationClient(ProviderClient):
    """Looks up elevations for sampled route points."""

    provider_name = "Open-Meteo elevation"

    def fetch_elevations(self, points: Sequence[Tuple[float, float]]) -> List[float]:
        if not points:
            return []
        params = {
            "latitude": ",".join(f"{lat:.4f}" for lat, _ in points),
            "longitude": ",".join(f"{lon:.4f}" for _, lon in points),
        }
        data = self._request_json("GET", self.settings.elevation_url, params=params)
        elevations = data.get("elevation") if isinstance(data, dict) else None
        if not isinstance(elevations, list):
            raise ApiError("elevation response is missing the elevation array")
        return [float(value) for value in elevations]

    def profile_for(self, route: RouteResult) -> ElevationProfile:
        try:
            elevations = self.fetch_elevations(sample_route_coordinates(route.geometry))
            return calculate_elevation_changes(elevations)
        except (EVChargeError, TypeError, ValueError) as exc:
            logger.warning("Elevation enrichment failed: %s", exc)
            return ElevationProfile(error=str(exc))

    def enrich(self, route: RouteResult) -> RouteResult:
        return route.model_copy(update={"elevation_profile": self.profile_for(route)})

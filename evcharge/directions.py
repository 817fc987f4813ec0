"""Directions provider client (openrouteservice)."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .client import ProviderClient
from .errors import ApiError
from .models import RouteResult, Step, parse_coordinate

DEFAULT_PROFILE = "driving-car"

logger = logging.getLogger(__name__)


class DirectionsClient(ProviderClient):
    """Requests a two-waypoint route and normalizes the GeoJSON answer."""

    provider_name = "Openrouteservice"

    def fetch_route(self, start: Any, end: Any, profile: str = DEFAULT_PROFILE) -> RouteResult:
        api_key = self.settings.require("openrouteservice_api_key")
        start_coord = parse_coordinate(start)
        end_coord = parse_coordinate(end)

        url = f"{self.settings.directions_url.rstrip('/')}/v2/directions/{profile}"
        headers = {
            "Authorization": api_key,
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json, application/geo+json; charset=utf-8",
        }
        payload = {"coordinates": [start_coord.to_lon_lat(), end_coord.to_lon_lat()]}
        data = self._request_json("POST", url, json=payload, headers=headers)
        return parse_route(data)


def parse_route(data: Any) -> RouteResult:
    features = data.get("features") if isinstance(data, dict) else None
    if not features:
        raise ApiError("No route found to the selected destination.")

    feature = features[0]
    geometry = (feature.get("geometry") or {}).get("coordinates") or []
    coordinates: List[List[float]] = [[float(lon), float(lat)] for lon, lat, *_ in geometry]
    if len(coordinates) < 2:
        raise ApiError("route geometry missing")

    properties = feature.get("properties") or {}
    summary = properties.get("summary") or {}
    steps = [_parse_step(step) for segment in properties.get("segments") or [] for step in segment.get("steps") or []]
    logger.debug("Parsed route with %s vertices and %s steps", len(coordinates), len(steps))

    return RouteResult(
        geometry=coordinates,
        distance_meters=float(summary.get("distance") or 0.0),
        duration_seconds=float(summary.get("duration") or 0.0),
        steps=steps,
    )


def _parse_step(step: Dict[str, Any]) -> Step:
    name = step.get("name")
    return Step(
        instruction_text=step.get("instruction") or "",
        street_name=name if name and name != "-" else None,
        distance_meters=float(step.get("distance") or 0.0),
        duration_seconds=float(step.get("duration") or 0.0),
    )

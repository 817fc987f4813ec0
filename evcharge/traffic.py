"""Traffic incidents (TomTom incident details) and route delay estimation."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError as ModelValidationError

from .client import ProviderClient
from .errors import ApiError
from .geo import bounding_box, haversine_km
from .models import BoundingBox, Coordinate, TrafficIncident

ROUTE_BUFFER_KM = 1.0
DEFAULT_SEARCH_RADIUS_MILES = 25.0
INCIDENT_FIELDS = (
    "{incidents{type,geometry{type,coordinates},properties{iconCategory,magnitudeOfDelay,"
    "startTime,endTime,from,to,length,delay,roadNumbers,"
    "aci{probabilityOfOccurrence,originalProbabilityOfOccurrence,numberOfReports}}}}"
)

logger = logging.getLogger(__name__)


def incidents_bbox(center: Coordinate, radius_miles: Optional[float] = None) -> BoundingBox:
    return bounding_box(center, radius_miles or DEFAULT_SEARCH_RADIUS_MILES)


class TrafficClient(ProviderClient):
    """Fetches live incidents inside a bounding box."""

    provider_name = "TomTom traffic"

    def fetch_incidents(self, bbox: BoundingBox) -> List[TrafficIncident]:
        api_key = self.settings.require("tomtom_api_key")
        url = f"{self.settings.traffic_url.rstrip('/')}/incidentDetails/json"
        params = {"key": api_key, "bbox": bbox.to_param(), "fields": INCIDENT_FIELDS}
        data = self._request_json("GET", url, params=params)
        if not isinstance(data, dict):
            raise ApiError("traffic provider returned an unexpected payload")
        return parse_incidents(data.get("incidents") or [])


def parse_incidents(items: Iterable[Dict[str, Any]]) -> List[TrafficIncident]:
    incidents: List[TrafficIncident] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        coordinates = (item.get("geometry") or {}).get("coordinates")
        properties = item.get("properties")
        if not coordinates or not properties:
            continue
        # line geometries are matched on their first vertex
        if isinstance(coordinates[0], (list, tuple)):
            coordinates = coordinates[0]
        category = properties.get("iconCategory")
        try:
            incidents.append(
                TrafficIncident(
                    coordinate=Coordinate.from_lon_lat(coordinates),
                    category_list=[int(category)] if category is not None else [],
                    delay_seconds=float(properties.get("delay") or 0.0),
                    magnitude_of_delay=int(properties.get("magnitudeOfDelay") or 0),
                )
            )
        except (ModelValidationError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed incident: %s", exc)
    return incidents


def incident_near_route(incident: TrafficIncident, route_coordinates: Sequence[Sequence[float]], buffer_km: float = ROUTE_BUFFER_KM) -> bool:
    """True when the incident lies within ``buffer_km`` of any route vertex.

    Only the polyline vertices are checked, not the segments between them.
    """
    for lon, lat, *_ in route_coordinates:
        if haversine_km(incident.coordinate, Coordinate(lat=lat, lng=lon)) <= buffer_km:
            return True
    return False


def calculate_traffic_delay(route_coordinates: Sequence[Sequence[float]], incidents: Iterable[TrafficIncident]) -> int:
    """Extra minutes caused by incidents along the route."""
    total_delay = 0.0
    for incident in incidents:
        if incident_near_route(incident, route_coordinates):
            total_delay += incident.delay_seconds / 60 * (incident.magnitude_of_delay * 0.5)
    return max(0, math.floor(total_delay + 0.5))

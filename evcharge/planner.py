"""Route assembly: base route, enrichment, delays and request bookkeeping."""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from .directions import DEFAULT_PROFILE, DirectionsClient
from .elevation import ElevationClient
from .errors import EVChargeError, ValidationError
from .models import Coordinate, ElevationProfile, RouteResult, Station, TrafficIncident, parse_coordinate
from .traffic import TrafficClient, calculate_traffic_delay, incidents_bbox
from .wait_time import estimate_wait

logger = logging.getLogger(__name__)

MAX_TRACKED_CLIENTS = 1024


class RoutePlanner:
    """Combines the provider clients into one enriched ``RouteResult``."""

    def __init__(
        self,
        directions: DirectionsClient,
        elevation: ElevationClient,
        traffic: Optional[TrafficClient] = None,
        max_workers: int = 2,
    ) -> None:
        self.directions = directions
        self.elevation = elevation
        self.traffic = traffic
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def plan_route(
        self,
        origin: Any,
        station: Station,
        *,
        incidents: Optional[Sequence[TrafficIncident]] = None,
        search_radius_miles: Optional[float] = None,
        range_km: Optional[float] = None,
        profile: str = DEFAULT_PROFILE,
        now: Optional[datetime] = None,
    ) -> RouteResult:
        """Route from ``origin`` to ``station`` with traffic and wait estimates.

        Elevation lookup and the incident fetch run concurrently once the base
        route is known; neither can fail the whole request. With ``range_km`` the
        result also says whether the driving distance fits the vehicle range.
        """
        origin_coord = parse_coordinate(origin)
        if station.coordinate is None:
            raise ValidationError("Selected station does not have valid coordinates for routing.")

        route = self.directions.fetch_route(origin_coord, station.coordinate, profile=profile)

        elevation_future = self._executor.submit(self.elevation.profile_for, route)
        if incidents is None:
            incidents_future = self._executor.submit(self._load_incidents, origin_coord, search_radius_miles)
            incident_list, traffic_error = incidents_future.result()
        else:
            incident_list, traffic_error = list(incidents), None
        elevation_profile: ElevationProfile = elevation_future.result()

        traffic_delay = calculate_traffic_delay(route.geometry, incident_list)
        wait_minutes = estimate_wait(station, now)
        total = route.base_duration_minutes + traffic_delay + wait_minutes
        within_range = route.distance_meters / 1000 <= range_km if range_km else None
        logger.info(
            "Planned route to station %s: %.1f min base, %s min traffic, %s min wait",
            station.id,
            route.base_duration_minutes,
            traffic_delay,
            wait_minutes,
        )
        return route.model_copy(
            update={
                "elevation_profile": elevation_profile,
                "traffic_delay_minutes": traffic_delay,
                "traffic_error": traffic_error,
                "within_range": within_range,
                "estimated_wait_minutes": wait_minutes,
                "total_time_with_delays_minutes": total,
            }
        )

    def _load_incidents(self, center: Coordinate, radius_miles: Optional[float]) -> Tuple[List[TrafficIncident], Optional[str]]:
        if self.traffic is None:
            return [], None
        try:
            return self.traffic.fetch_incidents(incidents_bbox(center, radius_miles)), None
        except EVChargeError as exc:
            logger.warning("Traffic lookup failed, assuming no delay: %s", exc)
            return [], str(exc)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


@dataclass
class _ClientRoutes:
    issued: int = 0
    result: Optional[RouteResult] = None


class RouteRequestTracker:
    """Last-write-wins bookkeeping for overlapping route requests per client.

    Only the ``max_clients`` most recently active clients are remembered; a
    request from an evicted client can no longer publish its result.
    """

    def __init__(self, max_clients: int = MAX_TRACKED_CLIENTS) -> None:
        self.max_clients = max_clients
        self._clients: OrderedDict[str, _ClientRoutes] = OrderedDict()
        self._lock = threading.Lock()

    def issue(self, client_id: str) -> int:
        """Hand out the next token; it supersedes every earlier one."""
        with self._lock:
            state = self._clients.setdefault(client_id, _ClientRoutes())
            self._clients.move_to_end(client_id)
            while len(self._clients) > self.max_clients:
                evicted, _ = self._clients.popitem(last=False)
                logger.debug("Forgetting routes for idle client %s", evicted)
            state.issued += 1
            return state.issued

    def publish(self, client_id: str, token: int, result: RouteResult) -> bool:
        """Keep ``result`` only if ``token`` is still the newest issued."""
        with self._lock:
            state = self._clients.get(client_id)
            if state is None or token != state.issued:
                logger.info("Discarding superseded route %s for client %s", token, client_id)
                return False
            state.result = result
            return True

    def latest(self, client_id: str) -> Optional[RouteResult]:
        with self._lock:
            state = self._clients.get(client_id)
            return state.result if state else None

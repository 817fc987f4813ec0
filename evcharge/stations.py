"""Station directory client plus the filter/sort engine used for display."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError as ModelValidationError

from .cache import StationCache, build_cache_key
from .client import ProviderClient
from .errors import ApiError, NetworkError
from .geo import km_to_miles
from .models import Station, StationQuery

FAST_CHARGER_MIN_KW = 50.0
FILTER_MODES = {"all", "available", "fast"}
SORT_KEYS = {"distance", "power", "name"}

logger = logging.getLogger(__name__)


class StationDirectoryClient(ProviderClient):
    """Fetches stations around a point, reading through a ``StationCache``."""

    provider_name = "Open Charge Map"

    def __init__(self, cache: Optional[StationCache] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.cache = cache or StationCache()

    def fetch_stations(self, query: StationQuery) -> List[Station]:
        api_key = self.settings.require("open_charge_map_api_key")
        cache_key = build_cache_key(query)

        cached = self.cache.get(cache_key)
        if cached is not None:
            return parse_stations(cached)

        params: Dict[str, object] = {
            "output": "json",
            "key": api_key,
            "latitude": query.latitude,
            "longitude": query.longitude,
            "distance": query.distance,
            "distanceunit": "km",
            "maxresults": query.max_results,
            "compact": "false",
            "verbose": "true",
        }
        if query.min_power_kw and query.min_power_kw > 0:
            params["minpowerkw"] = query.min_power_kw

        try:
            data = self._request_json("GET", self.settings.station_directory_url, params=params)
            if not isinstance(data, list):
                raise ApiError("station directory returned an unexpected payload")
        except (NetworkError, ApiError) as exc:
            stale = self.cache.get_stale(cache_key)
            if stale is None:
                raise
            logger.warning("Station fetch failed, serving cached data for %s: %s", cache_key, exc)
            return parse_stations(stale)

        self.cache.put(cache_key, data)
        return parse_stations(data)


def parse_stations(items: Iterable[Dict[str, Any]]) -> List[Station]:
    stations: List[Station] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            stations.append(Station.from_api(item))
        except (ModelValidationError, AttributeError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed station %s: %s", item.get("ID"), exc)
    return stations


@dataclass
class FilterResult:
    """Stations left after filtering and, when none are left, why."""

    stations: List[Station] = field(default_factory=list)
    message: Optional[str] = None


def has_available_connector(station: Station) -> bool:
    return any(conn.is_available for conn in station.connections)


def has_fast_charger(station: Station) -> bool:
    return any(conn.power_kw >= FAST_CHARGER_MIN_KW for conn in station.connections)


def is_out_of_range(station: Station, range_km: Optional[float]) -> bool:
    """True when the station is farther than the vehicle range allows."""
    if not range_km or station.distance_from_user is None:
        return False
    return station.distance_from_user > km_to_miles(range_km)


def filter_stations(
    stations: Sequence[Station],
    *,
    range_km: Optional[float] = None,
    preferred_connector_types: Iterable[str] = (),
    filter_by: str = "all",
) -> FilterResult:
    """Apply range, connector, availability and fast-charger filters in order.

    A stage that would leave nothing stops the pipeline and explains itself.
    """
    if filter_by not in FILTER_MODES:
        raise ValueError(f"filter_by must be one of {sorted(FILTER_MODES)}")
    if not stations:
        return FilterResult([], "No charging stations found for this search.")

    filtered = list(stations)

    if range_km:
        range_miles = km_to_miles(range_km)
        filtered = [
            station for station in filtered
            if station.distance_from_user is not None and station.distance_from_user <= range_miles
        ]
        if not filtered:
            return FilterResult([], f"No stations found within your specified range of {range_km:g} km.")

    preferred = set(preferred_connector_types)
    if preferred:
        filtered = [
            station for station in filtered
            if any(conn.connection_type_title in preferred for conn in station.connections)
        ]
        if not filtered:
            return FilterResult([], f"No stations match your preferred connector types: {', '.join(sorted(preferred))}.")

    if filter_by == "available":
        filtered = [station for station in filtered if has_available_connector(station)]
        if not filtered:
            return FilterResult([], "No stations currently have an available connector.")
    elif filter_by == "fast":
        filtered = [station for station in filtered if has_fast_charger(station)]
        if not filtered:
            return FilterResult([], f"No fast chargers ({FAST_CHARGER_MIN_KW:g}kW+) found.")

    return FilterResult(filtered)


def sort_stations(stations: Iterable[Station], sort_by: str = "distance") -> List[Station]:
    if sort_by == "distance":
        return sorted(stations, key=lambda station: station.distance_from_user or 0.0)
    if sort_by == "power":
        return sorted(stations, key=lambda station: station.max_power_kw, reverse=True)
    if sort_by == "name":
        return sorted(stations, key=lambda station: station.title.casefold())
    raise ValueError(f"sort_by must be one of {sorted(SORT_KEYS)}")


def classify_status(title: Optional[str]) -> str:
    """Bucket a free-form status title for display."""
    if not title:
        return "unknown"
    lowered = title.lower()
    if "unavailable" in lowered or "out of order" in lowered or "not operational" in lowered:
        return "unavailable"
    if "in use" in lowered or "charging" in lowered:
        return "in_use"
    if "operational" in lowered or "available" in lowered:
        return "available"
    return "unknown"


def summarize_stations(stations: Sequence[Station]) -> Dict[str, object]:
    """Dashboard counters for a station list."""
    total = len(stations)
    average_distance = 0.0
    if total:
        average_distance = round(sum(station.distance_from_user or 0.0 for station in stations) / total, 1)
    return {
        "total": total,
        "available": sum(1 for station in stations if has_available_connector(station)),
        "fast_chargers": sum(1 for station in stations if has_fast_charger(station)),
        "average_distance": average_distance,
    }

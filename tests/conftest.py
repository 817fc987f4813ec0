"""Shared fixtures: fake HTTP session, fake clock and provider payloads."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from evcharge.cache import MemoryStore, StationCache
from evcharge.config import Settings


class FakeResponse:
    """Just enough of ``requests.Response`` for the provider clients."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.reason = "OK" if status_code < 400 else "Error"

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


Handler = Union[FakeResponse, BaseException, Callable[[str, str, Dict[str, Any]], FakeResponse]]


class FakeSession:
    """Routes requests to canned responses by URL fragment and records them."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._handlers: List[Tuple[str, Handler]] = []

    def add(self, fragment: str, handler: Handler) -> None:
        self._handlers.insert(0, (fragment, handler))

    def calls_to(self, fragment: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if fragment in call["url"]]

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        for fragment, handler in self._handlers:
            if fragment in url:
                if isinstance(handler, BaseException):
                    raise handler
                if isinstance(handler, FakeResponse):
                    return handler
                return handler(method, url, kwargs)
        raise AssertionError(f"unexpected request to {url}")


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


OCM_URL = "https://ocm.test/v3/poi"
ORS_URL = "https://ors.test"
ELEVATION_URL = "https://meteo.test/v1/elevation"
TRAFFIC_URL = "https://tomtom.test/traffic/services/4"


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "open_charge_map_api_key": "ocm-key",
        "openrouteservice_api_key": "ors-key",
        "tomtom_api_key": "tomtom-key",
        "station_directory_url": OCM_URL,
        "directions_url": ORS_URL,
        "elevation_url": ELEVATION_URL,
        "traffic_url": TRAFFIC_URL,
        "request_timeout": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def connector_json(
    title: str = "CCS (Type 1)",
    power: Optional[float] = 50.0,
    quantity: Optional[int] = 1,
    operational: Optional[bool] = True,
    status: Optional[str] = "Available",
) -> Dict[str, Any]:
    return {
        "ConnectionType": {"Title": title},
        "PowerKW": power,
        "Quantity": quantity,
        "StatusType": {"IsOperational": operational, "Title": status},
    }


def station_json(
    station_id: int = 1,
    title: str = "Station",
    distance: Optional[float] = 1.0,
    lat: float = 37.78,
    lng: float = -122.41,
    connections: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {
        "ID": station_id,
        "AddressInfo": {
            "Title": title,
            "AddressLine1": "1 Market St",
            "Town": "San Francisco",
            "StateOrProvince": "CA",
            "Latitude": lat,
            "Longitude": lng,
            "Distance": distance,
        },
        "StatusType": {"Title": "Operational", "IsOperational": True},
        "Connections": connections if connections is not None else [connector_json()],
    }


def route_json(coordinates: Optional[List[List[float]]] = None, distance: float = 8000.0, duration: float = 900.0) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "geometry": {"type": "LineString", "coordinates": coordinates or [[-118.24, 34.05], [-118.30, 34.10]]},
                "properties": {
                    "summary": {"distance": distance, "duration": duration},
                    "segments": [
                        {
                            "steps": [
                                {"instruction": "Head north on Main St", "name": "Main St", "distance": 500.0, "duration": 60.0},
                                {"instruction": "Arrive at destination", "name": "-", "distance": 0.0, "duration": 0.0},
                            ]
                        }
                    ],
                },
            }
        ],
    }


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> StationCache:
    return StationCache(MemoryStore(), clock=clock)

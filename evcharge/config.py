"""Environment-driven settings for the provider clients and the Flask app."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict

from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv(override=True)

OPEN_CHARGE_MAP_URL = "https://api.openchargemap.io/v3/poi"
OPENROUTESERVICE_URL = "https://api.openrouteservice.org"
OPEN_METEO_ELEVATION_URL = "https://api.open-meteo.com/v1/elevation"
TOMTOM_TRAFFIC_URL = "https://api.tomtom.com/traffic/services/4"
REQUEST_TIMEOUT = 10.0
PLANNER_WORKERS = 8

CREDENTIAL_LABELS: Dict[str, str] = {
    "open_charge_map_api_key": "OPEN_CHARGE_MAP_API_KEY",
    "openrouteservice_api_key": "OPENROUTESERVICE_API_KEY",
    "tomtom_api_key": "TOMTOM_API_KEY",
}


def _get_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    if value is None:
        return default
    return value.strip()


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class Settings:
    """Provider credentials, endpoints and runtime knobs."""

    open_charge_map_api_key: str = ""
    openrouteservice_api_key: str = ""
    tomtom_api_key: str = ""
    station_directory_url: str = OPEN_CHARGE_MAP_URL
    directions_url: str = OPENROUTESERVICE_URL
    elevation_url: str = OPEN_METEO_ELEVATION_URL
    traffic_url: str = TOMTOM_TRAFFIC_URL
    station_cache_path: str = ".cache/stations.json"
    request_timeout: float = REQUEST_TIMEOUT
    planner_workers: int = PLANNER_WORKERS
    secret_key: str = "dev-secret"
    flask_env: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            open_charge_map_api_key=_get_env("OPEN_CHARGE_MAP_API_KEY"),
            openrouteservice_api_key=_get_env("OPENROUTESERVICE_API_KEY"),
            tomtom_api_key=_get_env("TOMTOM_API_KEY"),
            station_directory_url=_get_env("OPEN_CHARGE_MAP_URL", OPEN_CHARGE_MAP_URL),
            directions_url=_get_env("OPENROUTESERVICE_URL", OPENROUTESERVICE_URL),
            elevation_url=_get_env("OPEN_METEO_ELEVATION_URL", OPEN_METEO_ELEVATION_URL),
            traffic_url=_get_env("TOMTOM_TRAFFIC_URL", TOMTOM_TRAFFIC_URL),
            station_cache_path=_get_env("STATION_CACHE_PATH", ".cache/stations.json"),
            request_timeout=_get_env_float("REQUEST_TIMEOUT", REQUEST_TIMEOUT),
            planner_workers=max(1, _get_env_int("PLANNER_WORKERS", PLANNER_WORKERS)),
            secret_key=_get_env("SECRET_KEY", "dev-secret"),
            flask_env=_get_env("FLASK_ENV", "development"),
        )

    def require(self, name: str) -> str:
        """Return the credential stored in ``name`` or raise ``ConfigError``."""
        value = getattr(self, name, "")
        if not value:
            label = CREDENTIAL_LABELS.get(name, name.upper())
            raise ConfigError(f"{label} is not configured")
        return value

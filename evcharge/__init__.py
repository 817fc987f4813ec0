"""Flask application factory and global app wiring."""
from __future__ import annotations

import atexit
from dataclasses import dataclass
from typing import Optional

import requests
from flask import Flask

from .cache import JsonFileStore, StationCache
from .config import Settings
from .directions import DirectionsClient
from .elevation import ElevationClient
from .planner import RoutePlanner, RouteRequestTracker
from .stations import StationDirectoryClient
from .traffic import TrafficClient


@dataclass
class Services:
    """Provider clients and shared state used by the API blueprint."""

    settings: Settings
    stations: StationDirectoryClient
    traffic: TrafficClient
    planner: RoutePlanner
    tracker: RouteRequestTracker

    def close(self) -> None:
        self.planner.shutdown()


def build_services(settings: Settings, session: Optional[requests.Session] = None, cache: Optional[StationCache] = None) -> Services:
    session = session or requests.Session()
    cache = cache or StationCache(JsonFileStore(settings.station_cache_path))
    traffic = TrafficClient(settings=settings, session=session)
    planner = RoutePlanner(
        directions=DirectionsClient(settings=settings, session=session),
        elevation=ElevationClient(settings=settings, session=session),
        traffic=traffic,
        max_workers=settings.planner_workers,
    )
    return Services(
        settings=settings,
        stations=StationDirectoryClient(cache=cache, settings=settings, session=session),
        traffic=traffic,
        planner=planner,
        tracker=RouteRequestTracker(),
    )


def create_app(settings: Optional[Settings] = None, *, session: Optional[requests.Session] = None, cache: Optional[StationCache] = None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["FLASK_ENV"] = settings.flask_env
    services = build_services(settings, session=session, cache=cache)
    app.extensions["evcharge"] = services
    atexit.register(services.close)

    from .routes import api_bp  # pylint: disable=import-outside-toplevel

    app.register_blueprint(api_bp, url_prefix="/api")

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app

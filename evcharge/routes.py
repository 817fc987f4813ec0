"""REST API blueprint exposing station search, traffic and route endpoints."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError as ModelValidationError
from werkzeug.exceptions import HTTPException

from .elevation import describe_elevation
from .errors import ApiError, ConfigError, NetworkError, ValidationError
from .models import Coordinate, SearchParams, Station
from .stations import (
    FILTER_MODES,
    SORT_KEYS,
    classify_status,
    filter_stations,
    is_out_of_range,
    sort_stations,
    summarize_stations,
)
from .traffic import incidents_bbox

api_bp = Blueprint("api", __name__)

DEFAULT_MAX_RESULTS = 50


def _services():
    return current_app.extensions["evcharge"]


def _float_arg(name: str, default: Optional[float] = None, required: bool = False) -> Optional[float]:
    raw = request.args.get(name)
    if raw is None or not raw.strip():
        if required:
            raise ValidationError(f"{name} parameter is required")
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be numeric") from exc


def _coordinate_from_args() -> Coordinate:
    lat = _float_arg("lat", required=True)
    lng = _float_arg("lng", required=True)
    try:
        return Coordinate(lat=lat, lng=lng)
    except ModelValidationError as exc:
        raise ValidationError(f"invalid coordinate: {exc.errors()[0]['msg']}") from exc


def _positive_number(payload: Dict[str, Any], name: str) -> Optional[float]:
    value = payload.get(name)
    if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0):
        raise ValidationError(f"{name} must be a positive number")
    return value


def _station_payload(station: Station, range_km: Optional[float] = None) -> Dict[str, Any]:
    payload = station.model_dump()
    payload["status"] = classify_status(station.status_title)
    payload["max_power_kw"] = station.max_power_kw
    payload["out_of_range"] = is_out_of_range(station, range_km)
    return payload


@api_bp.errorhandler(ValidationError)
def handle_validation_error(exc: ValidationError):
    return jsonify({"error": str(exc)}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(ConfigError)
def handle_config_error(exc: ConfigError):
    current_app.logger.error("Configuration error: %s", exc)
    return jsonify({"error": str(exc)}), HTTPStatus.INTERNAL_SERVER_ERROR


@api_bp.errorhandler(ApiError)
@api_bp.errorhandler(NetworkError)
def handle_provider_error(exc: Exception):
    return jsonify({"error": str(exc)}), HTTPStatus.BAD_GATEWAY


@api_bp.errorhandler(Exception)
def handle_unexpected_error(exc: Exception):
    if isinstance(exc, HTTPException):
        return exc
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "internal error"}), HTTPStatus.INTERNAL_SERVER_ERROR


@api_bp.get("/charging-stations")
def charging_stations():
    coordinate = _coordinate_from_args()
    filter_by = (request.args.get("filter") or "all").strip().lower()
    sort_by = (request.args.get("sort") or "distance").strip().lower()
    if filter_by not in FILTER_MODES:
        raise ValidationError(f"filter must be one of {sorted(FILTER_MODES)}")
    if sort_by not in SORT_KEYS:
        raise ValidationError(f"sort must be one of {sorted(SORT_KEYS)}")

    connector_types = {item.strip() for item in (request.args.get("connector_types") or "").split(",") if item.strip()}
    max_results_param = request.args.get("maxresults")
    try:
        max_results = int(max_results_param) if max_results_param else DEFAULT_MAX_RESULTS
    except ValueError:
        max_results = DEFAULT_MAX_RESULTS

    try:
        params = SearchParams(
            coordinate=coordinate,
            search_radius_miles=_float_arg("distance", 25.0),
            min_power_kw=_float_arg("minpowerkw", 0.0),
            preferred_connector_types=connector_types,
            range_km=_float_arg("range_km"),
        )
        query = params.to_query(max_results=max_results)
    except ModelValidationError as exc:
        return jsonify({"error": exc.errors(include_url=False, include_context=False)}), HTTPStatus.BAD_REQUEST

    stations = _services().stations.fetch_stations(query)
    result = filter_stations(
        stations,
        range_km=params.range_km,
        preferred_connector_types=params.preferred_connector_types,
        filter_by=filter_by,
    )
    return jsonify(
        {
            "stations": [_station_payload(station, params.range_km) for station in sort_stations(result.stations, sort_by)],
            "message": result.message,
            "stats": summarize_stations(stations),
        }
    )


@api_bp.get("/traffic")
def traffic():
    coordinate = _coordinate_from_args()
    radius = _float_arg("radius", 25.0)
    if radius is None or radius <= 0:
        raise ValidationError("radius must be positive")
    bbox = incidents_bbox(coordinate, radius)
    incidents = _services().traffic.fetch_incidents(bbox)
    return jsonify({"bbox": bbox.model_dump(), "incidents": [incident.model_dump() for incident in incidents]})


@api_bp.post("/route")
def route():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "invalid or missing JSON"}), HTTPStatus.BAD_REQUEST

    start = payload.get("start")
    station_data = payload.get("station")
    if start is None or not isinstance(station_data, dict):
        raise ValidationError("start and station are required")
    try:
        station = Station.from_api(station_data)
    except (ModelValidationError, AttributeError, TypeError, ValueError) as exc:
        raise ValidationError(f"invalid station: {exc}") from exc

    radius = _positive_number(payload, "radius_miles")
    range_km = _positive_number(payload, "range_km")

    client_id = str(payload.get("client_id") or "default")
    services = _services()
    token = services.tracker.issue(client_id)
    result = services.planner.plan_route(start, station, search_radius_miles=radius, range_km=range_km)

    if not services.tracker.publish(client_id, token, result):
        return (
            jsonify({"error": "superseded by a newer route request", "request_token": token}),
            HTTPStatus.CONFLICT,
        )

    response: Dict[str, Any] = result.model_dump()
    response["elevation_summary"] = describe_elevation(result.elevation_profile)
    response["request_token"] = token
    return jsonify(response)


@api_bp.get("/route/latest/<client_id>")
def latest_route(client_id: str):
    result = _services().tracker.latest(client_id)
    if result is None:
        return jsonify({"error": "route not ready"}), HTTPStatus.NOT_FOUND
    response: Dict[str, Any] = result.model_dump()
    response["elevation_summary"] = describe_elevation(result.elevation_profile)
    return jsonify(response)


# TODO: Add per-client quotas before exposing the provider keys behind a public deployment.

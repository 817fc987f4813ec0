"""Data models for charging stations, routes and traffic incidents."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as ModelValidationError

from .errors import ValidationError


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class Coordinate(BaseModel):
    """A WGS84 point in degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def validate_numeric(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("coordinate components must be numeric")
        return value

    @classmethod
    def from_lon_lat(cls, pair: Sequence[float]) -> "Coordinate":
        """Build from the provider ``[lon, lat]`` order."""
        if len(pair) < 2:
            raise ValueError("coordinate pair needs two values")
        return cls(lat=pair[1], lng=pair[0])

    def to_lon_lat(self) -> List[float]:
        return [self.lng, self.lat]


def parse_coordinate(value: Any) -> Coordinate:
    """Accept a ``Coordinate``, a ``{lat, lng}`` mapping or a ``[lon, lat]`` pair."""
    if isinstance(value, Coordinate):
        return value
    try:
        if isinstance(value, dict):
            return Coordinate.model_validate(value)
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return Coordinate.from_lon_lat(value)
    except (ModelValidationError, ValueError) as exc:
        raise ValidationError(f"invalid coordinate {value!r}: {exc}") from exc
    raise ValidationError(f"invalid coordinate {value!r}: expected {{lat, lng}} or [lon, lat]")


class BoundingBox(BaseModel):
    """North/south/east/west extents of a search area."""

    model_config = ConfigDict(frozen=True)

    north: float
    south: float
    east: float
    west: float

    def to_param(self) -> str:
        return f"{self.west},{self.south},{self.east},{self.north}"


class SearchParams(BaseModel):
    """What the user asked for: where, how far and which plugs."""

    coordinate: Coordinate
    search_radius_miles: float = Field(default=25.0, gt=0)
    min_power_kw: float = Field(default=0.0, ge=0)
    preferred_connector_types: Set[str] = Field(default_factory=set)
    range_km: Optional[float] = Field(default=None, gt=0)

    def to_query(self, max_results: int = 50) -> "StationQuery":
        return StationQuery(
            latitude=self.coordinate.lat,
            longitude=self.coordinate.lng,
            distance=self.search_radius_miles,
            max_results=max_results,
            min_power_kw=self.min_power_kw if self.min_power_kw > 0 else None,
        )


class StationQuery(BaseModel):
    """Query sent to the station directory; also the source of cache keys."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    distance: float = Field(default=10.0, gt=0)
    max_results: int = Field(default=50, ge=1)
    min_power_kw: Optional[float] = Field(default=None, ge=0)


class Connector(BaseModel):
    """A physical charging outlet at a station."""

    model_config = ConfigDict(frozen=True)

    connection_type_title: Optional[str] = None
    power_kw: float = 0.0
    quantity: int = Field(default=1, ge=1)
    is_operational: bool = False
    status_title: Optional[str] = None

    @property
    def is_available(self) -> bool:
        """Operational and not currently occupied."""
        return self.is_operational and "in use" not in (self.status_title or "").lower()

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "Connector":
        connection_type = _as_dict(item.get("ConnectionType"))
        status = _as_dict(item.get("StatusType"))
        return cls(
            connection_type_title=connection_type.get("Title"),
            power_kw=float(item.get("PowerKW") or 0.0),
            quantity=max(1, int(item.get("Quantity") or 1)),
            is_operational=bool(status.get("IsOperational")),
            status_title=status.get("Title"),
        )


class Station(BaseModel):
    """A charging station as returned by the station directory."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    address: str = ""
    coordinate: Optional[Coordinate] = None
    distance_from_user: Optional[float] = None
    status_title: Optional[str] = None
    connections: Tuple[Connector, ...] = ()

    @property
    def max_power_kw(self) -> float:
        return max((conn.power_kw for conn in self.connections), default=0.0)

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "Station":
        """Normalize one station-directory record."""
        address_info = _as_dict(item.get("AddressInfo"))
        status = _as_dict(item.get("StatusType"))
        lat = address_info.get("Latitude")
        lng = address_info.get("Longitude")
        coordinate = None
        if isinstance(lat, (int, float)) and isinstance(lng, (int, float)):
            coordinate = Coordinate(lat=lat, lng=lng)
        distance = address_info.get("Distance")
        address_parts = [
            str(address_info.get(key)).strip()
            for key in ("AddressLine1", "Town", "StateOrProvince", "Postcode")
            if address_info.get(key)
        ]
        return cls(
            id=str(item.get("ID", "")),
            title=address_info.get("Title") or "",
            address=", ".join(address_parts),
            coordinate=coordinate,
            distance_from_user=float(distance) if isinstance(distance, (int, float)) else None,
            status_title=status.get("Title"),
            connections=tuple(Connector.from_api(conn) for conn in item.get("Connections") or [] if isinstance(conn, dict)),
        )


class Step(BaseModel):
    """One turn-by-turn instruction."""

    instruction_text: str
    street_name: Optional[str] = None
    distance_meters: float = 0.0
    duration_seconds: float = 0.0


class ElevationProfile(BaseModel):
    """Ascent/descent along a route, or the reason it is missing."""

    total_ascent: float = 0.0
    total_descent: float = 0.0
    sampled_elevations: List[float] = Field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None


class TrafficIncident(BaseModel):
    """A live incident reported by the traffic provider."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    category_list: List[int] = Field(default_factory=list)
    delay_seconds: float = Field(default=0.0, ge=0)
    magnitude_of_delay: int = Field(default=0, ge=0, le=4)


class RouteResult(BaseModel):
    """A base route plus the enrichment stages layered on top of it.

    ``geometry`` keeps the provider ``[lon, lat]`` order. Each stage returns a
    new instance via ``model_copy`` instead of mutating this one.
    """

    model_config = ConfigDict(frozen=True)

    geometry: List[List[float]]
    distance_meters: float = 0.0
    duration_seconds: float = 0.0
    steps: List[Step] = Field(default_factory=list)
    elevation_profile: Optional[ElevationProfile] = None
    traffic_delay_minutes: int = 0
    traffic_error: Optional[str] = None
    within_range: Optional[bool] = None
    estimated_wait_minutes: int = 0
    total_time_with_delays_minutes: float = 0.0

    @property
    def base_duration_minutes(self) -> float:
        return self.duration_seconds / 60

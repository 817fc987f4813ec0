import pytest
import requests

from evcharge.directions import DirectionsClient
from evcharge.errors import ApiError, ConfigError, NetworkError, ValidationError
from evcharge.models import Coordinate
from tests.conftest import ORS_URL, FakeResponse, make_settings, route_json

START = Coordinate(lat=34.05, lng=-118.24)
END = Coordinate(lat=34.10, lng=-118.30)


@pytest.fixture
def client(settings, session):
    return DirectionsClient(settings=settings, session=session)


def test_fetch_route_posts_two_waypoints(client, session):
    session.add("/v2/directions/driving-car", FakeResponse(payload=route_json()))

    route = client.fetch_route(START, END)

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{ORS_URL}/v2/directions/driving-car"
    assert call["json"] == {"coordinates": [[-118.24, 34.05], [-118.30, 34.10]]}
    assert call["headers"]["Authorization"] == "ors-key"
    assert route.geometry == [[-118.24, 34.05], [-118.30, 34.10]]
    assert route.distance_meters == 8000.0
    assert route.duration_seconds == 900.0
    assert [step.instruction_text for step in route.steps] == ["Head north on Main St", "Arrive at destination"]
    assert route.steps[0].street_name == "Main St"
    assert route.steps[1].street_name is None
    assert route.elevation_profile is None


def test_profile_is_part_of_url(client, session):
    session.add("/v2/directions/cycling-regular", FakeResponse(payload=route_json()))
    client.fetch_route([-118.24, 34.05], {"lat": 34.1, "lng": -118.3}, profile="cycling-regular")
    assert session.calls[0]["url"].endswith("/v2/directions/cycling-regular")


def test_missing_key_raises_config_error(session):
    client = DirectionsClient(settings=make_settings(openrouteservice_api_key=""), session=session)
    with pytest.raises(ConfigError):
        client.fetch_route(START, END)
    assert session.calls == []


@pytest.mark.parametrize("bad", [["x", "y"], {"lat": "north"}, None, [1.0, 2.0, 3.0]])
def test_malformed_coordinates_rejected_before_network(client, session, bad):
    with pytest.raises(ValidationError):
        client.fetch_route(bad, END)
    assert session.calls == []


def test_provider_error_message_is_surfaced(client, session):
    session.add(
        "/v2/directions",
        FakeResponse(status_code=404, payload={"error": {"code": 2010, "message": "Could not find routable point"}}),
    )
    with pytest.raises(ApiError, match="Could not find routable point"):
        client.fetch_route(START, END)


def test_empty_feature_collection_is_an_api_error(client, session):
    session.add("/v2/directions", FakeResponse(payload={"type": "FeatureCollection", "features": []}))
    with pytest.raises(ApiError, match="No route found"):
        client.fetch_route(START, END)


def test_transport_failure_is_a_network_error(client, session):
    session.add("/v2/directions", requests.Timeout("slow"))
    with pytest.raises(NetworkError):
        client.fetch_route(START, END)


@pytest.mark.parametrize("coordinates", [[], [[-118.24, 34.05]]])
def test_route_without_usable_geometry_is_an_api_error(client, session, coordinates):
    payload = route_json()
    payload["features"][0]["geometry"]["coordinates"] = coordinates
    session.add("/v2/directions", FakeResponse(payload=payload))
    with pytest.raises(ApiError, match="route geometry missing"):
        client.fetch_route(START, END)

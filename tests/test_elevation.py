import pytest
import requests

from evcharge.elevation import (
    NOT_ENOUGH_DATA_MESSAGE,
    ElevationClient,
    calculate_elevation_changes,
    describe_elevation,
    sample_route_coordinates,
)
from evcharge.models import ElevationProfile, RouteResult
from tests.conftest import ELEVATION_URL, FakeResponse


def line(n):
    return [[-118.0 + i * 0.01, 34.0 + i * 0.01] for i in range(n)]


@pytest.fixture
def client(settings, session):
    return ElevationClient(settings=settings, session=session)


@pytest.mark.parametrize("n", [1, 2, 15])
def test_short_routes_are_not_downsampled(n):
    geometry = line(n)
    assert sample_route_coordinates(geometry) == [(lat, lon) for lon, lat in geometry]


@pytest.mark.parametrize("n", [16, 29, 100, 1000])
def test_long_routes_are_downsampled_keeping_the_last_point(n):
    geometry = line(n)
    sampled = sample_route_coordinates(geometry)
    stride = n // 14
    assert len(sampled) <= 15
    assert sampled[0] == (geometry[0][1], geometry[0][0])
    assert sampled[1] == (geometry[stride][1], geometry[stride][0])
    assert sampled[-1] == (geometry[-1][1], geometry[-1][0])


@pytest.mark.parametrize(
    "elevations",
    [[10.0, 20.0], [100.0, 80.0, 120.0, 90.5], [5.0, 5.0, 5.0], [300.0, 250.0, 260.0, 100.0, 101.25]],
)
def test_ascent_minus_descent_equals_net_change(elevations):
    profile = calculate_elevation_changes(elevations)
    assert profile.total_ascent - profile.total_descent == pytest.approx(elevations[-1] - elevations[0])
    assert profile.total_ascent >= 0 and profile.total_descent >= 0


def test_elevation_changes_values():
    profile = calculate_elevation_changes([100.0, 150.0, 120.0, 130.0])
    assert profile.total_ascent == 60.0
    assert profile.total_descent == 30.0
    assert profile.message is None


@pytest.mark.parametrize("elevations", [[], [12.0]])
def test_not_enough_samples(elevations):
    profile = calculate_elevation_changes(elevations)
    assert profile.message == NOT_ENOUGH_DATA_MESSAGE
    assert profile.error is None


def test_fetch_elevations_request_format(client, session):
    session.add(ELEVATION_URL, FakeResponse(payload={"elevation": [10, 20.5]}))
    assert client.fetch_elevations([(34.123456, -118.987654), (34.1, -118.2)]) == [10.0, 20.5]
    params = session.calls[0]["params"]
    assert params == {"latitude": "34.1235,34.1000", "longitude": "-118.9877,-118.2000"}


def test_fetch_elevations_without_points_skips_request(client, session):
    assert client.fetch_elevations([]) == []
    assert session.calls == []


def test_enrich_attaches_profile(client, session):
    session.add(ELEVATION_URL, FakeResponse(payload={"elevation": [10.0, 150.0, 140.0]}))
    route = RouteResult(geometry=line(3), duration_seconds=600)
    enriched = client.enrich(route)
    assert enriched is not route
    assert route.elevation_profile is None
    assert enriched.elevation_profile.total_ascent == 140.0
    assert enriched.elevation_profile.total_descent == 10.0


@pytest.mark.parametrize(
    "handler",
    [
        FakeResponse(status_code=500, text="internal error"),
        FakeResponse(payload={"reason": "no elevation"}),
        requests.ConnectionError("offline"),
    ],
)
def test_enrich_never_raises(client, session, handler):
    session.add(ELEVATION_URL, handler)
    enriched = client.enrich(RouteResult(geometry=line(3)))
    assert enriched.elevation_profile.error
    assert enriched.elevation_profile.sampled_elevations == []


@pytest.mark.parametrize(
    "profile, fragment",
    [
        (ElevationProfile(total_ascent=150.0, total_descent=20.0), "climb"),
        (ElevationProfile(total_ascent=20.0, total_descent=101.0), "descent"),
        (ElevationProfile(total_ascent=200.0, total_descent=180.0), "Hilly"),
        (ElevationProfile(total_ascent=100.0, total_descent=100.0), "flat"),
        (ElevationProfile(message=NOT_ENOUGH_DATA_MESSAGE), "Not enough data"),
    ],
)
def test_describe_elevation(profile, fragment):
    assert fragment in describe_elevation(profile)


def test_describe_elevation_hides_errors():
    assert describe_elevation(ElevationProfile(error="boom")) is None
    assert describe_elevation(None) is None

import math

import pytest

from geowhisper.core.geo import Location, format_distance, haversine_m


def test_haversine_is_symmetric_and_zero_on_same_point():
    a = Location(latitude=12.9716, longitude=77.5946)
    b = Location(latitude=13.0827, longitude=80.2707)

    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))
    assert haversine_m(a, a) == 0
    assert haversine_m(a, b) > 0


def test_one_degree_of_longitude_at_equator():
    d = haversine_m(Location(0, 0), Location(0, 1))
    assert d == pytest.approx(111_195, abs=1)
    assert d == pytest.approx(6_371_000 * math.pi / 180)


def test_antipodal_points_do_not_blow_up():
    d = haversine_m(Location(0, 0), Location(0, 180))
    assert d == pytest.approx(math.pi * 6_371_000)


@pytest.mark.parametrize(
    "meters, expected",
    [
        (0, "0m away"),
        (350.4, "350m away"),
        (350.5, "351m away"),
        (999, "999m away"),
        (1000, "1.0km away"),
        (1234, "1.2km away"),
        (1250, "1.3km away"),
        (2500, "2.5km away"),
    ],
)
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected

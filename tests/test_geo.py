import math

import pytest

from routing.geo import GeoPoint, TravelMode, distance_km, distance_m, estimate_travel_time


def test_distance_identity_and_symmetry(job_site):
    busan = (35.1796, 129.0756)

    assert distance_m(job_site, job_site) == 0
    assert distance_m(job_site, busan) == pytest.approx(distance_m(busan, job_site))


def test_one_degree_of_latitude():
    # R * pi / 180 with the mean Earth radius
    assert distance_m((0, 0), (1, 0)) == pytest.approx(111194.93, abs=0.01)
    assert distance_km((0, 0), (1, 0)) == pytest.approx(111.19493, abs=1e-4)


def test_seoul_to_busan_is_about_325_km(job_site):
    assert distance_km(job_site, (35.1796, 129.0756)) == pytest.approx(325, rel=0.01)


# Great-circle references on a 6371 km sphere.
@pytest.mark.parametrize("a, b, km", [
    ((51.5074, -0.1278), (48.8566, 2.3522), 343.56),      # London - Paris
    ((40.7128, -74.0060), (34.0522, -118.2437), 3935.75), # New York - Los Angeles
    ((-33.8688, 151.2093), (-37.8136, 144.9631), 713.41), # Sydney - Melbourne
])
def test_city_pairs(a, b, km):
    assert distance_km(a, b) == pytest.approx(km, rel=1e-3)


@pytest.mark.parametrize("bad", [
    None,
    ("abc", 126.9),
    (91, 0),
    (0, 181),
    (float("nan"), 0),
    {"lat": 37.5},
    "37.5,126.9",
])
def test_unknown_points_give_unknown_distance(job_site, bad):
    assert GeoPoint.parse(bad) is None
    assert distance_m(job_site, bad) is None
    assert distance_m(bad, job_site) is None


def test_parse_accepts_mapping_and_pair():
    assert GeoPoint.parse({"lat": "37.5", "lng": 127}) == GeoPoint(37.5, 127.0)
    assert GeoPoint.parse([37.5, 127]) == GeoPoint(37.5, 127.0)


@pytest.mark.parametrize("mode, expected", [
    (TravelMode.CAR, (15, 24, 40)),
    ("public", (20, 30, 40)),
    ("bike", (24, 40, 60)),
])
def test_travel_time_for_10km(mode, expected):
    t = estimate_travel_time(10000, mode)
    assert (t.min_minutes, t.average_minutes, t.max_minutes) == expected


@pytest.mark.parametrize("meters", [None, -1, float("nan"), "far"])
def test_travel_time_unknown_distance(meters):
    assert estimate_travel_time(meters) is None


def test_travel_time_unknown_mode_is_config_error():
    with pytest.raises(ValueError):
        estimate_travel_time(1000, "helicopter")


def test_travel_time_is_ordered():
    t = estimate_travel_time(7300, "car")
    assert t.min_minutes <= t.average_minutes <= t.max_minutes
    assert not math.isnan(t.average_minutes)

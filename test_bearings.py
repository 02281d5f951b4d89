"""
Tests for bearing conversion and grid convergence
"""

import pytest

from bearings import compute_grid_convergence, convert_bearing, normalize_degrees, utm_zone


@pytest.mark.parametrize("deg, expected", [(0.0, 0.0), (360.0, 0.0), (720.5, 0.5), (-10.0, 350.0), (-1e-20, 0.0)])
def test_normalize_degrees(deg, expected):
    assert normalize_degrees(deg) == pytest.approx(expected)
    assert 0.0 <= normalize_degrees(deg) < 360.0


@pytest.mark.parametrize("bearing, from_ref, to_ref, expected", [
    (100.0, 'magnetic', 'true', 110.0),
    (100.0, 'true', 'magnetic', 90.0),
    (100.0, 'grid', 'true', 102.0),
    (100.0, 'true', 'grid', 98.0),
    (100.0, 'grid', 'magnetic', 92.0),
    (100.0, 'magnetic', 'grid', 108.0),
    (355.0, 'magnetic', 'true', 5.0),
    (-10.0, 'true', 'true', 350.0),
])
def test_convert_bearing(bearing, from_ref, to_ref, expected):
    result = convert_bearing(bearing, from_ref, to_ref, declination=10.0, convergence=2.0)
    assert result == pytest.approx(expected)


def test_conversion_round_trip():
    forward = convert_bearing(42.0, 'grid', 'magnetic', declination=-13.5, convergence=1.25)
    assert convert_bearing(forward, 'magnetic', 'grid', declination=-13.5, convergence=1.25) == pytest.approx(42.0)


def test_unknown_reference_raises():
    with pytest.raises(ValueError):
        convert_bearing(10.0, 'compass', 'true')


def test_utm_zone():
    assert utm_zone(-79.38) == 17
    assert utm_zone(-180.0) == 1
    assert utm_zone(3.0) == 31


def test_convergence_is_zero_on_central_meridian_and_equator():
    assert compute_grid_convergence(45.0, -75.0) == pytest.approx(0.0, abs=1e-12)
    assert compute_grid_convergence(0.0, -72.0) == pytest.approx(0.0, abs=1e-12)


def test_convergence_sign():
    # zone 18, central meridian -75
    assert compute_grid_convergence(45.0, -73.0) > 0.0
    assert compute_grid_convergence(45.0, -77.0) < 0.0
    assert compute_grid_convergence(-45.0, -73.0) < 0.0


def test_explicit_zone():
    # zone 17 has central meridian -81
    assert compute_grid_convergence(45.0, -73.0, zone=17) > compute_grid_convergence(45.0, -73.0)

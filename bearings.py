"""
Bearing conversion between true, magnetic and grid north.

Conventions:
    declination is positive when magnetic north is east (clockwise) of true north
    convergence is positive when grid north is east (clockwise) of true north
"""

import math
from typing import Optional

BEARING_REFS = ('true', 'magnetic', 'grid')


def normalize_degrees(deg: float) -> float:
    """Wrap an angle into [0, 360)."""
    value = deg % 360.0
    # -1e-20 % 360 rounds to 360.0
    return 0.0 if value == 360.0 else value


def convert_bearing(bearing: float,
                    from_ref: str,
                    to_ref: str,
                    declination: float = 0.0,
                    convergence: float = 0.0) -> float:
    """
    Convert a bearing from one north reference to another.

    The input is first converted to a true bearing, then to the target.
    E.g. grid -> magnetic goes grid -> true -> magnetic.

    Args:
        bearing: Bearing in degrees
        from_ref, to_ref: One of 'true', 'magnetic', 'grid'
        declination: Magnetic declination in degrees
        convergence: Grid convergence in degrees

    Returns:
        Converted bearing in [0, 360)

    Raises:
        ValueError: If a reference is not recognised
    """
    for ref in (from_ref, to_ref):
        if ref not in BEARING_REFS:
            raise ValueError(f"Unknown bearing reference {ref!r}, expected one of {BEARING_REFS}")

    if from_ref == to_ref:
        return normalize_degrees(bearing)

    if from_ref == 'magnetic':
        true_bearing = bearing + declination
    elif from_ref == 'grid':
        true_bearing = bearing + convergence
    else:
        true_bearing = bearing

    if to_ref == 'magnetic':
        out = true_bearing - declination
    elif to_ref == 'grid':
        out = true_bearing - convergence
    else:
        out = true_bearing

    return normalize_degrees(out)


def utm_zone(longitude: float) -> int:
    return int(math.floor((longitude + 180.0) / 6.0)) + 1


def compute_grid_convergence(latitude: float, longitude: float, zone: Optional[int] = None) -> float:
    """
    Approximate UTM grid convergence in degrees.

    gamma = atan(sin(lambda - lambda0) * tan(phi)), with lambda0 the central
    meridian of the zone (taken from the longitude if not given). Suitable
    for small areas.
    """
    if zone is None:
        zone = utm_zone(longitude)
    central_meridian = zone * 6 - 183
    lam = math.radians(longitude)
    lam0 = math.radians(central_meridian)
    phi = math.radians(latitude)
    return math.degrees(math.atan(math.sin(lam - lam0) * math.tan(phi)))

"""
World Magnetic Model Field Synthesis
====================================

This module evaluates the WMM spherical harmonic expansion at a point:
geodetic to geocentric coordinate transform, radius and longitude terms,
Schmidt quasi-normalized associated Legendre functions, the truncated
series with secular variation, and rotation of the resulting vector back
into the geodetic frame to read off declination.

All functions are synchronous and only read the Model they are given.

Author: WMM Declination Service
Date: 2025
"""

import math
from typing import NamedTuple, Tuple

import numpy as np

from wmm_coefficients import Model, TriangularIndex, idx

# WGS84 ellipsoid (km)
WGS84_A = 6378.137
WGS84_B = 6356.7523142
WGS84_E2 = 1.0 - (WGS84_B * WGS84_B) / (WGS84_A * WGS84_A)

# WMM reference radius (km)
EARTH_REF_RADIUS_KM = 6371.2

POLE_COS_EPSILON = 1e-10


class SphericalPoint(NamedTuple):
    longitude_deg: float
    geocentric_latitude_deg: float
    radius_km: float


class SphericalHarmonicBasis(NamedTuple):
    rr: np.ndarray   # (re / r) ** (n + 2)
    cml: np.ndarray  # cos(m * lambda)
    sml: np.ndarray  # sin(m * lambda)


class FieldVector(NamedTuple):
    bx: float
    by: float
    bz: float


def geodetic_to_spherical(latitude: float, longitude: float, altitude_km: float = 0.0) -> SphericalPoint:
    """
    Convert geodetic coordinates to geocentric spherical coordinates.

    Args:
        latitude: Geodetic latitude in degrees
        longitude: Longitude in degrees (passed through unchanged)
        altitude_km: Height above the WGS84 ellipsoid in kilometres

    Returns:
        SphericalPoint with geocentric latitude (degrees) and radius (km)
    """
    lat_rad = math.radians(latitude)
    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)

    # Radius of curvature in the prime vertical
    rc = WGS84_A / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)

    x = (rc + altitude_km) * cos_lat
    z = (rc * (1.0 - WGS84_E2) + altitude_km) * sin_lat

    r = math.hypot(x, z)
    geocentric_lat = math.degrees(math.asin(z / r))
    return SphericalPoint(longitude, geocentric_lat, r)


def compute_basis(longitude_deg: float, radius_km: float, nmax: int) -> SphericalHarmonicBasis:
    """Radius powers and cos/sin multiples of longitude for degrees 0..nmax."""
    lon_rad = math.radians(longitude_deg)
    cos_lambda = math.cos(lon_rad)
    sin_lambda = math.sin(lon_rad)
    ratio = EARTH_REF_RADIUS_KM / radius_km

    rr = np.zeros(nmax + 1)
    rr[0] = ratio * ratio
    for n in range(1, nmax + 1):
        rr[n] = rr[n - 1] * ratio

    cml = np.zeros(nmax + 1)
    sml = np.zeros(nmax + 1)
    cml[0] = 1.0
    sml[0] = 0.0
    if nmax >= 1:
        cml[1] = cos_lambda
        sml[1] = sin_lambda
    for m in range(2, nmax + 1):
        cml[m] = cml[m - 1] * cos_lambda - sml[m - 1] * sin_lambda
        sml[m] = cml[m - 1] * sin_lambda + sml[m - 1] * cos_lambda

    return SphericalHarmonicBasis(rr, cml, sml)


def schmidt_factors(nmax: int) -> np.ndarray:
    """
    Schmidt quasi-normalization factors, indexed like the coefficients.

    Args:
        nmax: Maximum degree

    Returns:
        Array S with S[idx(n, m)] the factor for degree n, order m
    """
    index = TriangularIndex(nmax)
    schmidt = np.zeros(index.size)
    schmidt[0] = 1.0
    for n in range(1, nmax + 1):
        schmidt[index(n, 0)] = schmidt[index(n - 1, 0)] * (2 * n - 1) / n
        for m in range(1, n + 1):
            two = 2 if m == 1 else 1
            schmidt[index(n, m)] = schmidt[index(n, m - 1)] * math.sqrt((n - m + 1) * two / (n + m))
    return schmidt


def associated_legendre(sin_phi: float, nmax: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Schmidt quasi-normalized associated Legendre functions and derivatives.

    The recurrences run degree-major, order-minor; each term depends on
    terms computed earlier in the same sweep.

    Args:
        sin_phi: Sine of the geocentric latitude
        nmax: Maximum degree

    Returns:
        Tuple of (P, dP) arrays indexed by idx(n, m)
    """
    index = TriangularIndex(nmax)
    P = np.zeros(index.size)
    dP = np.zeros(index.size)
    P[0] = 1.0
    dP[0] = 0.0

    x = sin_phi
    z = math.sqrt(max(0.0, (1.0 - x) * (1.0 + x)))

    for n in range(1, nmax + 1):
        for m in range(n + 1):
            i = index(n, m)
            if n == m:
                i1 = index(n - 1, m - 1)
                P[i] = z * P[i1]
                dP[i] = z * dP[i1] + x * P[i1]
            elif n == 1 and m == 0:
                i1 = index(n - 1, m)
                P[i] = x * P[i1]
                dP[i] = x * dP[i1] - z * P[i1]
            elif m > n - 2:
                i2 = index(n - 1, m)
                P[i] = x * P[i2]
                dP[i] = x * dP[i2] - z * P[i2]
            else:
                i1 = index(n - 2, m)
                i2 = index(n - 1, m)
                k = ((n - 1) * (n - 1) - m * m) / ((2 * n - 1) * (2 * n - 3))
                P[i] = x * P[i2] - k * P[i1]
                dP[i] = x * dP[i2] - z * P[i2] - k * dP[i1]

    schmidt = schmidt_factors(nmax)
    start = idx(1, 0)
    end = idx(nmax, nmax) + 1
    P[start:end] *= schmidt[start:end]
    dP[start:end] = -dP[start:end] * schmidt[start:end]
    return P, dP


def synthesize_field(model: Model,
                     dt_years: float,
                     basis: SphericalHarmonicBasis,
                     P: np.ndarray,
                     dP: np.ndarray) -> FieldVector:
    """
    Sum the truncated spherical harmonic series.

    Args:
        model: Coefficient set
        dt_years: Years elapsed since model.epoch (secular variation)
        basis: Radius and longitude terms from compute_basis
        P, dP: Legendre values from associated_legendre

    Returns:
        Raw (bx, by, bz) in the geocentric spherical frame, nT
    """
    rr, cml, sml = basis
    bx = by = bz = 0.0
    for n in range(1, model.nmax + 1):
        for m in range(n + 1):
            i = idx(n, m)
            g = model.g[i] + dt_years * model.dg[i]
            h = model.h[i] + dt_years * model.dh[i]
            common = g * cml[m] + h * sml[m]
            bz -= rr[n] * common * (n + 1) * P[i]
            by += rr[n] * (g * sml[m] - h * cml[m]) * m * P[i]
            bx -= rr[n] * common * dP[i]
    return FieldVector(float(bx), float(by), float(bz))


def rotate_to_geodetic(field: FieldVector, geocentric_lat_deg: float, geodetic_lat_deg: float) -> FieldVector:
    """Rotate a raw geocentric field vector into the geodetic (north, east, down) frame."""
    bx, by, bz = field
    cos_phi = math.cos(math.radians(geocentric_lat_deg))
    # Skip at the poles, where cos(phi) -> 0 would blow up the east component
    if abs(cos_phi) > POLE_COS_EPSILON:
        by = by / cos_phi
    psi = math.radians(geocentric_lat_deg - geodetic_lat_deg)
    bz_geo = bx * math.sin(psi) + bz * math.cos(psi)
    bx_geo = bx * math.cos(psi) - bz * math.sin(psi)
    return FieldVector(bx_geo, by, bz_geo)


def declination_from_field(field: FieldVector, geocentric_lat_deg: float, geodetic_lat_deg: float) -> float:
    """
    Declination in degrees (-180..180), positive when magnetic north is east
    of true north.
    """
    bx_geo, by_geo, _ = rotate_to_geodetic(field, geocentric_lat_deg, geodetic_lat_deg)
    return math.degrees(math.atan2(by_geo, bx_geo))


def declination_at(model: Model, latitude: float, longitude: float, altitude_km: float, dt_years: float) -> float:
    """Run the full pipeline for one point against an already loaded model."""
    point = geodetic_to_spherical(latitude, longitude, altitude_km)
    sin_phi = math.sin(math.radians(point.geocentric_latitude_deg))
    basis = compute_basis(point.longitude_deg, point.radius_km, model.nmax)
    P, dP = associated_legendre(sin_phi, model.nmax)
    field = synthesize_field(model, dt_years, basis, P, dP)
    return declination_from_field(field, point.geocentric_latitude_deg, latitude)

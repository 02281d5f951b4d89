"""
NOAA Geomagnetic Calculator Client
==================================

Queries the NOAA/NCEI geomag web calculator for a declination, used to
cross-check the local model. Any network, HTTP or response format problem
yields 0.0 instead of an exception.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import requests

logger = logging.getLogger(__name__)

NOAA_DECLINATION_URL = "https://www.ngdc.noaa.gov/geomag-web/calculators/calculateDeclination"


def _extract_declination(data) -> Optional[float]:
    if not isinstance(data, dict):
        return None
    result = data.get('result')
    if isinstance(result, list) and result and isinstance(result[0], dict):
        for key in ('declination', 'declination_value'):
            value = result[0].get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
    value = data.get('declination')
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def query_noaa_declination(latitude: float,
                           longitude: float,
                           date: Optional[datetime] = None,
                           timeout: float = 10.0) -> float:
    """
    Ask the NOAA web calculator for the declination at a point.

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        date: Date of interest (default: today)
        timeout: Request timeout in seconds

    Returns:
        Declination in degrees, or 0.0 on failure
    """
    if date is None:
        date = datetime.now(timezone.utc)

    params = {
        'lat1': latitude,
        'lon1': longitude,
        'resultFormat': 'json',
        'startYear': date.year,
        'startMonth': date.month,
        'startDay': date.day,
    }

    try:
        response = requests.get(NOAA_DECLINATION_URL, params=params, timeout=timeout)
        if not response.ok:
            logger.warning(f"NOAA declination request failed with status {response.status_code}")
            return 0.0
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"NOAA declination request failed: {e}")
        return 0.0

    declination = _extract_declination(data)
    if declination is None:
        logger.warning(f"Unexpected NOAA response: {str(data)[:200]}")
        return 0.0
    return declination

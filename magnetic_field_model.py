"""
Magnetic Declination Service
============================

Entry point for declination queries. Validates the request, loads the WMM
coefficient set through the shared ModelCache and runs the field synthesis
pipeline from magnetic_model.

Invalid input (non-finite coordinates, unparsable dates) is not an error:
the query returns 0 degrees.

Author: WMM Declination Service
Date: 2025
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import date as date_type, datetime, timezone
from typing import Optional, Tuple, Union

import pandas as pd

import config
from magnetic_model import declination_at
from model_cache import ModelCache
from wmm_coefficients import Model

logger = logging.getLogger(__name__)

DateLike = Union[datetime, date_type, str, None]


@dataclass(frozen=True)
class DeclinationOptions:
    """
    Per-query options.

    Attributes:
        altitude_km: Height above the WGS84 ellipsoid in kilometres (default 0)
    """
    altitude_km: float = 0.0

    def __post_init__(self):
        if not math.isfinite(self.altitude_km):
            raise ValueError(f"altitude_km must be finite, got {self.altitude_km}")


DEFAULT_OPTIONS = DeclinationOptions()


def to_utc_datetime(value: DateLike) -> Optional[datetime]:
    """
    Coerce a date-like value to an aware UTC datetime.

    None means now. Naive datetimes and plain dates are taken as UTC.
    Returns None if the value cannot be understood.
    """
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except OverflowError:
            return None
    if isinstance(value, date_type):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return to_utc_datetime(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def decimal_year(when: datetime) -> float:
    """
    Convert a datetime to a decimal year using UTC calendar fields.

    The fraction is whole elapsed UTC days over the length of the year, so
    every time on the same UTC day maps to the same value and January 1 of
    year Y is exactly Y.
    """
    when = to_utc_datetime(when)
    day_of_year = when.timetuple().tm_yday - 1
    days_in_year = date_type(when.year, 12, 31).timetuple().tm_yday
    return when.year + day_of_year / days_in_year


def _finite(value) -> Optional[float]:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class DeclinationService:
    """
    Magnetic declination from the World Magnetic Model.

    Provides:
    - Blocking and asyncio query entry points sharing one ModelCache
    - Fail-soft handling of invalid coordinates and dates
    - Validation against tabulated declination test values
    """

    def __init__(self, cache: ModelCache):
        self.cache = cache

    def _prepare(self, latitude, longitude, date: DateLike) -> Optional[Tuple[float, float, datetime]]:
        when = to_utc_datetime(date)
        lat = _finite(latitude)
        lon = _finite(longitude)
        if when is None or lat is None or lon is None:
            logger.debug(f"Invalid declination request lat={latitude!r} lon={longitude!r} date={date!r}, returning 0")
            return None
        return lat, lon, when

    @staticmethod
    def _evaluate(model: Model, lat: float, lon: float, when: datetime, options: DeclinationOptions) -> float:
        dt_years = decimal_year(when) - model.epoch
        return declination_at(model, lat, lon, options.altitude_km, dt_years)

    def compute_declination(self,
                            latitude: float,
                            longitude: float,
                            date: DateLike = None,
                            options: Optional[DeclinationOptions] = None) -> float:
        """
        Magnetic declination at a point.

        Args:
            latitude: Geodetic latitude in degrees
            longitude: Longitude in degrees
            date: datetime, date or ISO-8601 string (default: now)
            options: DeclinationOptions (default: altitude 0 km)

        Returns:
            Declination in degrees, -180..180, positive east of true north.
            0.0 when the coordinates or date are invalid.

        Raises:
            ModelLoadError: If the coefficient set cannot be loaded
        """
        request = self._prepare(latitude, longitude, date)
        if request is None:
            return 0.0
        model = self.cache.load_model()
        return self._evaluate(model, *request, options or DEFAULT_OPTIONS)

    async def compute_declination_async(self,
                                        latitude: float,
                                        longitude: float,
                                        date: DateLike = None,
                                        options: Optional[DeclinationOptions] = None) -> float:
        """Asyncio variant of compute_declination."""
        request = self._prepare(latitude, longitude, date)
        if request is None:
            return 0.0
        model = await self.cache.load_model_async()
        return self._evaluate(model, *request, options or DEFAULT_OPTIONS)

    def validate_against_test_values(self,
                                     test_file: str = config.DEFAULT_TEST_VALUES_PATH,
                                     tolerance_deg: float = 0.1) -> bool:
        """
        Validate declinations against a table of test values.

        The file is whitespace separated with '#' comments; the first five
        columns are decimal year, altitude (km), latitude, longitude and
        expected declination (degrees).

        Args:
            test_file: Path to the test values file
            tolerance_deg: Allowed absolute error in degrees

        Returns:
            True if at least 95% of the rows are within tolerance
        """
        table = pd.read_csv(test_file, sep=r'\s+', comment='#', header=None)
        if table.shape[1] < 5:
            raise ValueError(f"Expected at least 5 columns in {test_file}, got {table.shape[1]}")

        model = self.cache.load_model()
        logger.info(f"Validating declination against {len(table)} rows from {test_file}")

        passed = 0
        failed = 0
        for year, altitude_km, latitude, longitude, expected in table.iloc[:, :5].itertuples(index=False):
            result = declination_at(model, latitude, longitude, altitude_km, year - model.epoch)
            error = abs(result - expected)
            if error < tolerance_deg:
                passed += 1
            else:
                failed += 1
                if failed <= 3:
                    logger.warning(f"Validation failed: lat={latitude:.1f}, lon={longitude:.1f}, "
                                   f"expected={expected:.3f}°, got={result:.3f}°")

        success_rate = passed / (passed + failed) * 100 if (passed + failed) > 0 else 0
        logger.info(f"Validation results: {passed} passed, {failed} failed ({success_rate:.1f}% success)")
        return success_rate >= 95.0


# Global instance for easy access
_service: Optional[DeclinationService] = None
_service_lock = threading.Lock()


def get_declination_service() -> DeclinationService:
    """Get the process-wide declination service, building it from config on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = DeclinationService(ModelCache(config.build_coefficient_source()))
        return _service


def compute_declination(latitude: float,
                        longitude: float,
                        date: DateLike = None,
                        options: Optional[DeclinationOptions] = None) -> float:
    """Convenience wrapper around the global service."""
    return get_declination_service().compute_declination(latitude, longitude, date, options)


async def compute_declination_async(latitude: float,
                                    longitude: float,
                                    date: DateLike = None,
                                    options: Optional[DeclinationOptions] = None) -> float:
    return await get_declination_service().compute_declination_async(latitude, longitude, date, options)


def main():
    """Print the declination for a known location."""
    config.configure_logging()
    print("WMM Magnetic Declination")
    print("=" * 40)

    try:
        service = get_declination_service()
        declination = service.compute_declination(43.6532, -79.3832, options=DeclinationOptions(altitude_km=0.1))
        print("Latitude: 43.6532°N, Longitude: 79.3832°W, Altitude: 100m")
        print(f"D (Declination): {declination:.2f}°")
    except Exception as e:
        logger.error(f"Declination calculation failed: {e}", exc_info=True)


if __name__ == "__main__":
    main()

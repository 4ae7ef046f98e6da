"""
Weather data sources for the dispersion engine.

Provides a pluggable interface for hourly meteorological series:

  - OpenMeteoProvider fetches the live hourly forecast over HTTP.
  - SyntheticWeatherProvider produces a deterministic pseudo-periodic
    series, used when the upstream forecast is unavailable.
  - ConstantWindProvider repeats one manually entered wind for every hour.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import requests

from config import (
    OPEN_METEO_URL,
    OPEN_METEO_TIMEOUT_S,
    OPEN_METEO_MAX_DAYS,
    MIN_WIND_SPEED,
    MANUAL_TEMPERATURE_C,
)

logger = logging.getLogger(__name__)


class UpstreamUnavailableError(RuntimeError):
    """The upstream weather service could not supply a usable forecast."""


@dataclass(frozen=True)
class MeteoSample:
    """Meteorological conditions for one simulated hour."""

    timestamp: datetime
    wind_speed: float               # m/s at 10 m
    wind_direction: float           # Meteorological degrees (FROM), 0-360
    temperature: float              # deg C at 2 m
    cloud_cover: Optional[float] = None  # percent, 0-100

    def clamped(self) -> "MeteoSample":
        """Return a copy with every field forced into its physical range.

        Non-finite wind speed becomes calm air, non-finite direction becomes
        north and non-finite cloud cover is treated as missing.
        """
        speed = self.wind_speed if math.isfinite(self.wind_speed) else 0.0
        direction = self.wind_direction if math.isfinite(self.wind_direction) else 0.0
        cloud = self.cloud_cover
        if cloud is not None:
            cloud = min(max(cloud, 0.0), 100.0) if math.isfinite(cloud) else None
        return replace(
            self,
            wind_speed=max(speed, 0.0),
            wind_direction=direction % 360.0,
            cloud_cover=cloud,
        )


@dataclass(frozen=True)
class HourlyWindOverride:
    """Manual wind for one hour of a run, applied on top of the forecast."""

    hour: int
    wind_speed: float
    wind_direction: float


def validate_forecast(samples: List[MeteoSample]) -> List[str]:
    """Check a forecast series and return a list of problems (empty if valid)."""
    if not samples:
        return ["Forecast data must be a non-empty list"]

    errors = []
    for i, sample in enumerate(samples):
        if sample.timestamp is None:
            errors.append(f"Point {i}: missing time")
        if sample.wind_speed < 0:
            errors.append(f"Point {i}: wind speed must be non-negative")
        if not 0 <= sample.wind_direction <= 360:
            errors.append(
                f"Point {i}: wind direction must be between 0 and 360 degrees"
            )
    return errors


def apply_wind_overrides(
    samples: List[MeteoSample],
    overrides: Iterable[HourlyWindOverride],
) -> List[MeteoSample]:
    """Replace wind speed/direction at the overridden hour indices.

    Overrides whose hour falls outside the series are ignored; a later
    override for the same hour wins.
    """
    by_hour: Dict[int, HourlyWindOverride] = {o.hour: o for o in overrides}
    if not by_hour:
        return list(samples)

    result = []
    for i, sample in enumerate(samples):
        override = by_hour.get(i)
        if override is not None:
            sample = replace(
                sample,
                wind_speed=override.wind_speed,
                wind_direction=override.wind_direction,
            )
        result.append(sample)
    return result


def current_hour_utc() -> datetime:
    return datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)


class WeatherProvider(ABC):
    """Abstract base class for hourly meteorological series."""

    @abstractmethod
    def get_forecast(
        self, latitude: float, longitude: float, hours: int
    ) -> List[MeteoSample]:
        """Return one MeteoSample per hour, starting at the current hour.

        Args:
            latitude: Site latitude (degrees).
            longitude: Site longitude (degrees).
            hours: Number of hourly samples to return.

        Raises:
            UpstreamUnavailableError: If the source cannot supply the series.
        """
        ...


class OpenMeteoProvider(WeatherProvider):
    """Hourly 10 m wind, 2 m temperature and cloud cover from Open-Meteo.

    Args:
        base_url: Forecast endpoint.
        timeout: Request timeout in seconds.
        session: Optional ``requests.Session`` (or compatible object with
                 a ``get`` method); the ``requests`` module is used otherwise.
        start: First hour of the returned series; the current UTC hour if
               omitted.  Earlier hours of the day are dropped.
    """

    HOURLY_FIELDS = "wind_speed_10m,wind_direction_10m,temperature_2m,cloud_cover"

    def __init__(
        self,
        base_url: str = OPEN_METEO_URL,
        timeout: float = OPEN_METEO_TIMEOUT_S,
        session=None,
        start: Optional[datetime] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._http = session if session is not None else requests
        self.start = start

    def get_forecast(
        self, latitude: float, longitude: float, hours: int
    ) -> List[MeteoSample]:
        start = self.start or current_hour_utc()
        # The hourly block begins at 00:00 UTC of the start day
        lead = start.hour
        forecast_days = min(max(1, math.ceil((lead + hours) / 24)), OPEN_METEO_MAX_DAYS)
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "hourly": self.HOURLY_FIELDS,
            "temperature_unit": "celsius",
            "wind_speed_unit": "ms",
            "timezone": "UTC",
            "forecast_days": forecast_days,
        }

        try:
            response = self._http.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailableError(f"Open-Meteo request failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailableError(f"Open-Meteo returned invalid JSON: {e}") from e

        samples = [
            s for s in self._parse_hourly(payload, lead + hours) if s.timestamp >= start
        ][:hours]
        if len(samples) < hours:
            raise UpstreamUnavailableError(
                f"Open-Meteo returned {len(samples)} hours, {hours} requested"
            )
        logger.debug("Fetched %d forecast hours for (%.4f, %.4f)", len(samples), latitude, longitude)
        return samples

    @staticmethod
    def _parse_hourly(payload: dict, max_hours: int) -> List[MeteoSample]:
        """Parse an Open-Meteo hourly block into MeteoSamples."""
        try:
            hourly = payload["hourly"]
            times = hourly["time"]
            speeds = hourly["wind_speed_10m"]
            directions = hourly["wind_direction_10m"]
            temperatures = hourly["temperature_2m"]
            clouds = hourly.get("cloud_cover") or [None] * len(times)

            samples = []
            for i in range(min(max_hours, len(times))):
                timestamp = datetime.fromisoformat(times[i]).replace(tzinfo=timezone.utc)
                cloud = clouds[i] if i < len(clouds) else None
                samples.append(MeteoSample(
                    timestamp=timestamp,
                    wind_speed=max(MIN_WIND_SPEED, float(speeds[i])),
                    wind_direction=float(directions[i]),
                    temperature=float(temperatures[i]),
                    cloud_cover=None if cloud is None else float(cloud),
                ))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise UpstreamUnavailableError(f"Malformed Open-Meteo payload: {e}") from e
        return samples


class SyntheticWeatherProvider(WeatherProvider):
    """Deterministic pseudo-periodic wind and temperature.

    Wind speed follows a diurnal sine around 5 m/s, direction veers through
    the day and temperature peaks mid-afternoon.  The same start hour always
    gives the same series.

    Args:
        start: First timestamp of the series; the current UTC hour if omitted.
    """

    def __init__(self, start: Optional[datetime] = None):
        self.start = start

    def get_forecast(
        self, latitude: float, longitude: float, hours: int
    ) -> List[MeteoSample]:
        base_time = self.start or current_hour_utc()
        samples = []
        for i in range(hours):
            timestamp = base_time + timedelta(hours=i)
            hour = timestamp.hour

            base_speed = 5.0 + 2.0 * math.sin(hour * math.pi / 12.0)
            variation = 0.5 * math.sin(i * 0.5)
            direction = (180.0 + hour * 15.0 + 30.0 * math.cos(i * 0.3)) % 360.0

            samples.append(MeteoSample(
                timestamp=timestamp,
                wind_speed=max(0.5, base_speed + variation),
                wind_direction=direction,
                temperature=15.0 + 8.0 * math.sin(hour * math.pi / 12.0),
            ))
        return samples


class ConstantWindProvider(WeatherProvider):
    """Manual-wind mode: the same wind for every hour.

    Args:
        wind_speed: Wind speed (m/s).
        wind_direction: Wind direction (meteorological degrees).
        temperature: Temperature assigned to every hour (deg C).
        start: First timestamp of the series; the current UTC hour if omitted.
    """

    def __init__(
        self,
        wind_speed: float,
        wind_direction: float,
        temperature: float = MANUAL_TEMPERATURE_C,
        start: Optional[datetime] = None,
    ):
        self.wind_speed = wind_speed
        self.wind_direction = wind_direction
        self.temperature = temperature
        self.start = start

    def get_forecast(
        self, latitude: float, longitude: float, hours: int
    ) -> List[MeteoSample]:
        base_time = self.start or current_hour_utc()
        return [
            MeteoSample(
                timestamp=base_time + timedelta(hours=h),
                wind_speed=self.wind_speed,
                wind_direction=self.wind_direction,
                temperature=self.temperature,
            )
            for h in range(hours)
        ]

"""
Simulation Runner.

Entry point used by the outer (HTTP / UI) layer.  Validates the request,
assembles the hourly meteorological series and hands it to the engine:

  - Manual-wind mode repeats the entered wind for every hour.
  - Automatic mode reads the forecast cache, then the weather provider.
    If the provider is unavailable a synthetic series is used instead;
    the failure is logged, never raised.
  - Hourly wind overrides are applied last, before stability classification.
"""

import logging
from datetime import datetime
from typing import List, Optional

from data.forecast_cache import ForecastCache
from data.weather import (
    ConstantWindProvider,
    MeteoSample,
    OpenMeteoProvider,
    SyntheticWeatherProvider,
    UpstreamUnavailableError,
    WeatherProvider,
    apply_wind_overrides,
    validate_forecast,
)
from simulation.engine import SimulationResult, run_simulation
from simulation.params import SimulationParams

logger = logging.getLogger(__name__)


class SimulationRunner:
    """Runs validated simulation requests against a shared forecast cache.

    One runner can serve concurrent requests; the cache is the only shared
    state and is internally locked.

    Args:
        provider: Upstream forecast source (Open-Meteo by default).
        cache: Forecast cache shared between requests; no caching if None.
        fallback: Source used when the provider fails (synthetic by default).
        start: First timestamp for synthesized series; current UTC hour if None.
    """

    def __init__(
        self,
        provider: Optional[WeatherProvider] = None,
        cache: Optional[ForecastCache] = None,
        fallback: Optional[WeatherProvider] = None,
        start: Optional[datetime] = None,
    ):
        self.provider = provider if provider is not None else OpenMeteoProvider(start=start)
        self.cache = cache
        self.fallback = fallback if fallback is not None else SyntheticWeatherProvider(start)
        self.start = start

    def forecast(self, latitude: float, longitude: float, hours: int) -> List[MeteoSample]:
        """
        Hourly forecast for a location, via the cache when possible.

        A cached series shorter than ``hours`` counts as a miss.  Only
        successful upstream fetches are cached, never the synthetic fallback.
        """
        if self.cache is not None:
            cached = self.cache.get(latitude, longitude)
            if cached is not None and len(cached) >= hours:
                return cached[:hours]

        try:
            samples = self.provider.get_forecast(latitude, longitude, hours)
            if len(samples) < hours:
                raise UpstreamUnavailableError(
                    f"Provider returned {len(samples)} hours, {hours} requested"
                )
        except UpstreamUnavailableError as e:
            logger.warning("Weather provider unavailable, using synthetic meteorology: %s", e)
            return self.fallback.get_forecast(latitude, longitude, hours)

        if self.cache is not None:
            self.cache.set(latitude, longitude, samples)
        return samples[:hours]

    def resolve_meteorology(self, params: SimulationParams) -> List[MeteoSample]:
        """Assemble the run's series: forecast or manual wind, then overrides."""
        if params.use_auto_weather:
            samples = self.forecast(params.latitude, params.longitude, params.duration)
        else:
            manual = ConstantWindProvider(
                wind_speed=params.wind_speed,
                wind_direction=params.wind_direction,
                start=self.start,
            )
            samples = manual.get_forecast(params.latitude, params.longitude, params.duration)

        samples = apply_wind_overrides(samples, params.hourly_wind_overrides)

        problems = validate_forecast(samples)
        if problems:
            # Out-of-range values are clamped per hour by the engine
            logger.warning("Meteorology has %d out-of-range values: %s", len(problems), problems[0])
        return samples

    def run(self, params: SimulationParams) -> SimulationResult:
        """Run a full simulation for a validated request."""
        source = params.to_source()
        meteo = self.resolve_meteorology(params)
        return run_simulation(meteo, source, params.fixed_stability_class)

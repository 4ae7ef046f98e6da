"""
Simulation request parameters and up-front validation.

Everything a caller can get wrong is checked here, before any weather is
fetched or any grid is solved.  All problems are reported together.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from config import (
    DEFAULT_GRID_SIZE,
    GRID_EXTENT_M,
    MAX_GRID_SIZE,
    MAX_GRID_EXTENT_M,
    RECEPTOR_HEIGHT_M,
    DEFAULT_MIXING_HEIGHT_M,
    DEFAULT_LOSS_RATE,
    DEFAULT_POLLUTANT,
    DEFAULT_STABILITY_CLASS,
    DEPOSITION_VELOCITIES,
    MIN_DURATION_HOURS,
    MAX_DURATION_HOURS,
)
from data.weather import HourlyWindOverride
from models.source import SourceParams
from models.stability import StabilityClass


class InvalidParameterError(ValueError):
    """One or more simulation parameters are out of range."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class SimulationParams:
    """A complete dispersion simulation request.

    Args:
        latitude: Source latitude, -90..90.
        longitude: Source longitude, -180..180.
        emission_rate: Emission rate Q (g/s), >= 0.
        stack_height: Release height H (meters), >= 0.
        duration: Number of simulated hours, 1..168.
        stability_class: Fixed Pasquill-Gifford class; D when omitted.
        auto_map_stability: Classify every hour from its meteorology instead
            of using a fixed class.
        use_auto_weather: Fetch the forecast; otherwise wind_speed and
            wind_direction are required and held constant.
        wind_speed: Manual wind speed (m/s).
        wind_direction: Manual wind direction (meteorological degrees).
        pollutant_type: "PM2.5" or "PM10"; selects the default deposition velocity.
        receptor_height: Receptor height (meters).
        grid_size: Cells per grid side, a positive even integer.
        grid_spacing: Meters between grid points; 5000 / grid_size if omitted.
        deposition_velocity: Dry deposition velocity (m/s); pollutant default if omitted.
        mixing_height: Mixing-layer depth (meters), > 0.
        loss_rate: First-order chemical loss rate (1/s), >= 0.
        hourly_wind_overrides: Manual winds for individual hours.

    Raises:
        InvalidParameterError: If any value is missing or out of range.
    """

    latitude: float
    longitude: float
    emission_rate: float
    stack_height: float
    duration: int
    stability_class: Optional[str] = None
    auto_map_stability: bool = False
    use_auto_weather: bool = True
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    pollutant_type: str = DEFAULT_POLLUTANT
    receptor_height: float = RECEPTOR_HEIGHT_M
    grid_size: int = DEFAULT_GRID_SIZE
    grid_spacing: Optional[float] = None
    deposition_velocity: Optional[float] = None
    mixing_height: float = DEFAULT_MIXING_HEIGHT_M
    loss_rate: float = DEFAULT_LOSS_RATE
    hourly_wind_overrides: Tuple[HourlyWindOverride, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "hourly_wind_overrides", tuple(self.hourly_wind_overrides))
        errors = self.validate()
        if errors:
            raise InvalidParameterError(errors)

    def validate(self) -> List[str]:
        """Return every problem with the request (empty when valid)."""
        errors = []

        if not _finite(self.latitude) or not -90 <= self.latitude <= 90:
            errors.append("Latitude must be between -90 and 90")
        if not _finite(self.longitude) or not -180 <= self.longitude <= 180:
            errors.append("Longitude must be between -180 and 180")
        if not _finite(self.emission_rate) or self.emission_rate < 0:
            errors.append("Emission rate must be non-negative")
        if not _finite(self.stack_height) or self.stack_height < 0:
            errors.append("Source height must be non-negative")
        if (
            not isinstance(self.duration, int)
            or isinstance(self.duration, bool)
            or not MIN_DURATION_HOURS <= self.duration <= MAX_DURATION_HOURS
        ):
            errors.append(
                f"Duration must be between {MIN_DURATION_HOURS} and "
                f"{MAX_DURATION_HOURS} hours"
            )

        if self.stability_class is not None:
            try:
                StabilityClass.parse(self.stability_class)
            except ValueError as e:
                errors.append(str(e))

        if not self.use_auto_weather:
            if not _finite(self.wind_speed) or not _finite(self.wind_direction):
                errors.append("Manual weather mode requires windSpeed and windDirection")
            elif self.wind_speed < 0:
                errors.append("Wind speed must be non-negative")

        if self.pollutant_type not in DEPOSITION_VELOCITIES:
            errors.append(
                f"Unknown pollutant type '{self.pollutant_type}'. "
                f"Use one of {sorted(DEPOSITION_VELOCITIES)}"
            )
        if not _finite(self.receptor_height) or self.receptor_height < 0:
            errors.append("Receptor height must be non-negative")
        if (
            not isinstance(self.grid_size, int)
            or isinstance(self.grid_size, bool)
            or self.grid_size < 2
            or self.grid_size % 2
            or self.grid_size > MAX_GRID_SIZE
        ):
            errors.append(f"Grid size must be a positive even integer no greater than {MAX_GRID_SIZE}")
        elif self.grid_spacing is None or _finite(self.grid_spacing):
            if self.effective_grid_spacing * self.grid_size > MAX_GRID_EXTENT_M:
                errors.append(f"Grid extent must not exceed {MAX_GRID_EXTENT_M / 1000:g} km")
        if self.grid_spacing is not None and (
            not _finite(self.grid_spacing) or self.grid_spacing <= 0
        ):
            errors.append("Grid spacing must be positive")
        if self.deposition_velocity is not None and (
            not _finite(self.deposition_velocity) or self.deposition_velocity < 0
        ):
            errors.append("Deposition velocity must be non-negative")
        if not _finite(self.mixing_height) or self.mixing_height <= 0:
            errors.append("Mixing height must be positive")
        if not _finite(self.loss_rate) or self.loss_rate < 0:
            errors.append("Loss rate must be non-negative")

        for override in self.hourly_wind_overrides:
            if not isinstance(override.hour, int) or not 0 <= override.hour < _as_int(self.duration):
                errors.append(f"Wind override hour {override.hour} is outside the simulation")
            if not _finite(override.wind_speed) or override.wind_speed < 0:
                errors.append(f"Wind override for hour {override.hour}: speed must be non-negative")
            if not _finite(override.wind_direction) or not 0 <= override.wind_direction <= 360:
                errors.append(
                    f"Wind override for hour {override.hour}: direction must be "
                    "between 0 and 360 degrees"
                )

        return errors

    @property
    def fixed_stability_class(self) -> Optional[StabilityClass]:
        """The class to use for every hour, or None when auto-mapping."""
        if self.auto_map_stability:
            return None
        return StabilityClass.parse(self.stability_class or DEFAULT_STABILITY_CLASS)

    @property
    def effective_deposition_velocity(self) -> float:
        if self.deposition_velocity is not None:
            return float(self.deposition_velocity)
        return DEPOSITION_VELOCITIES[self.pollutant_type]

    @property
    def effective_grid_spacing(self) -> float:
        if self.grid_spacing is not None:
            return float(self.grid_spacing)
        return GRID_EXTENT_M / self.grid_size

    def to_source(self) -> SourceParams:
        """Source characteristics and grid geometry for the solver."""
        return SourceParams(
            emission_rate=float(self.emission_rate),
            stack_height=float(self.stack_height),
            latitude=float(self.latitude),
            longitude=float(self.longitude),
            deposition_velocity=self.effective_deposition_velocity,
            mixing_height=float(self.mixing_height),
            loss_rate=float(self.loss_rate),
            receptor_height=float(self.receptor_height),
            grid_size=self.grid_size,
            grid_spacing=self.effective_grid_spacing,
        )


def _as_int(value) -> int:
    return value if isinstance(value, int) else 0

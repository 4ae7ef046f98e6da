"""
Point-source data model for the plume solver.

Holds the release characteristics and receptor-grid geometry that stay
fixed for the whole of one simulation run.
"""

import math
from dataclasses import dataclass

from config import (
    DEFAULT_GRID_SIZE,
    GRID_EXTENT_M,
    RECEPTOR_HEIGHT_M,
    DEFAULT_MIXING_HEIGHT_M,
    DEFAULT_LOSS_RATE,
    DEPOSITION_VELOCITIES,
    DEFAULT_POLLUTANT,
)


@dataclass(frozen=True)
class SourceParams:
    """A continuous point source and the receptor grid around it.

    Args:
        emission_rate: Emission rate Q (g/s).
        stack_height: Effective release height H (meters).
        latitude: Source latitude (degrees).
        longitude: Source longitude (degrees).
        deposition_velocity: Dry deposition velocity (m/s).
        mixing_height: Mixing-layer depth (meters), must be > 0.
        loss_rate: First-order loss rate (1/s).
        receptor_height: Receptor height above ground (meters).
        grid_size: Number of cells per side; the grid has grid_size + 1 points.
        grid_spacing: Distance between grid points (meters).
    """

    emission_rate: float
    stack_height: float
    latitude: float
    longitude: float
    deposition_velocity: float = DEPOSITION_VELOCITIES[DEFAULT_POLLUTANT]
    mixing_height: float = DEFAULT_MIXING_HEIGHT_M
    loss_rate: float = DEFAULT_LOSS_RATE
    receptor_height: float = RECEPTOR_HEIGHT_M
    grid_size: int = DEFAULT_GRID_SIZE
    grid_spacing: float = GRID_EXTENT_M / DEFAULT_GRID_SIZE

    def __post_init__(self):
        for name in (
            "emission_rate", "stack_height", "latitude", "longitude",
            "deposition_velocity", "mixing_height", "loss_rate",
            "receptor_height", "grid_spacing",
        ):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if self.emission_rate < 0:
            raise ValueError("emission_rate must be >= 0")
        if self.stack_height < 0:
            raise ValueError("stack_height must be >= 0")
        if self.mixing_height <= 0:
            raise ValueError("mixing_height must be > 0")
        if self.loss_rate < 0:
            raise ValueError("loss_rate must be >= 0")
        if self.deposition_velocity < 0:
            raise ValueError("deposition_velocity must be >= 0")
        if self.grid_size < 1:
            raise ValueError("grid_size must be >= 1")
        if self.grid_spacing <= 0:
            raise ValueError("grid_spacing must be > 0")

    @property
    def removal_rate(self) -> float:
        """Combined first-order removal rate (1/s): deposition plus chemical loss."""
        return self.deposition_velocity / self.mixing_height + self.loss_rate

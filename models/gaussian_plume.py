"""
Gaussian Plume Dispersion Model.

Implements the standard Gaussian plume equation for a continuous elevated
point source with Pasquill-Gifford dispersion coefficients and total ground
reflection (image source).

Convention:
  - Wind direction uses METEOROLOGICAL convention (direction wind comes FROM).
  - The plume travels toward wind_direction + 180 degrees.
  - Grid coordinates are meters East (x) and North (y) of the source.
  - Concentrations are in g/m^3 for an emission rate in g/s.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from config import (
    DISPERSION_COEFFICIENTS,
    METERS_PER_DEGREE_LAT,
    MIN_WIND_SPEED,
    MIN_DOWNWIND_DISTANCE_M,
    MIN_DISTANCE_KM,
    MIN_SIGMA_M,
)
from models.source import SourceParams
from models.stability import StabilityClass


def _get_dispersion_coeffs(stability_class) -> dict:
    """Return (a, b) coefficients for sigma_y and sigma_z."""
    return DISPERSION_COEFFICIENTS[StabilityClass.parse(stability_class).value]


def compute_sigma(distance_downwind, stability_class):
    """
    Compute lateral (sigma_y) and vertical (sigma_z) dispersion parameters.

        sigma = a * x_km^b, clamped to MIN_SIGMA_M

    Args:
        distance_downwind: Downwind distance(s) in meters, scalar or array.
        stability_class: Pasquill-Gifford class A-F.

    Returns:
        (sigma_y, sigma_z) in meters; floats for scalar input, arrays otherwise.
    """
    coeffs = _get_dispersion_coeffs(stability_class)
    a_y, b_y = coeffs["sigma_y"]
    a_z, b_z = coeffs["sigma_z"]

    # Floor distance so the power law never sees zero or upwind values
    x_km = np.maximum(np.asarray(distance_downwind, dtype=float) / 1000.0, MIN_DISTANCE_KM)

    sigma_y = np.maximum(a_y * np.power(x_km, b_y), MIN_SIGMA_M)
    sigma_z = np.maximum(a_z * np.power(x_km, b_z), MIN_SIGMA_M)

    if np.ndim(distance_downwind) == 0:
        return float(sigma_y), float(sigma_z)
    return sigma_y, sigma_z


# ---------------------------------------------------------------------------
# Coordinate transform
# ---------------------------------------------------------------------------

def meters_per_degree_lon(source_latitude: float) -> float:
    return METERS_PER_DEGREE_LAT * np.cos(np.radians(source_latitude))


def offset_to_meters(d_lat, d_lon, source_latitude: float):
    """Convert a geographic offset (degrees) to (east, north) meters."""
    east = np.asarray(d_lon, dtype=float) * meters_per_degree_lon(source_latitude)
    north = np.asarray(d_lat, dtype=float) * METERS_PER_DEGREE_LAT
    return east, north


def meters_to_offset(east, north, source_latitude: float):
    """Convert (east, north) meters to a geographic offset (d_lat, d_lon) in degrees."""
    d_lat = np.asarray(north, dtype=float) / METERS_PER_DEGREE_LAT
    d_lon = np.asarray(east, dtype=float) / meters_per_degree_lon(source_latitude)
    return d_lat, d_lon


def to_downwind_frame(d_lat, d_lon, wind_direction_deg: float, source_latitude: float):
    """
    Express a receptor's offset from the source in the plume frame.

    Args:
        d_lat, d_lon: Receptor offset from the source (degrees), scalar or array.
        wind_direction_deg: Meteorological wind direction (degrees, FROM).
        source_latitude: Latitude of the source, sets the longitude scale.

    Returns:
        (downwind, crosswind) in meters.  Crosswind is positive to the left
        of the direction of travel.
    """
    dx, dy = offset_to_meters(d_lat, d_lon, source_latitude)

    # Met convention: 180 means wind FROM the south, blowing toward north (+y)
    wind_toward_rad = np.radians((wind_direction_deg + 180.0) % 360.0)
    wind_ux = np.sin(wind_toward_rad)
    wind_uy = np.cos(wind_toward_rad)

    downwind = dx * wind_ux + dy * wind_uy
    crosswind = -dx * wind_uy + dy * wind_ux
    return downwind, crosswind


# ---------------------------------------------------------------------------
# Concentration field
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ConcentrationGrid:
    """One hour's ground-level concentration field.

    ``values[i, j]`` is the concentration at (x[j], y[i]).
    """

    values: np.ndarray
    x: np.ndarray
    y: np.ndarray
    peak: float

    def scaled(self, factor: float) -> "ConcentrationGrid":
        """Return a copy with every cell and the peak multiplied by factor."""
        return ConcentrationGrid(
            values=self.values * factor,
            x=self.x,
            y=self.y,
            peak=self.peak * factor,
        )

    def peak_location(self) -> Tuple[float, float]:
        """(x, y) in meters of the highest cell."""
        i, j = np.unravel_index(np.argmax(self.values), self.values.shape)
        return float(self.x[j]), float(self.y[i])


def create_grid(grid_size: int, grid_spacing: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the receptor axes for a square grid centered on the source.

    Returns:
        (x, y) 1-D arrays of grid_size + 1 offsets in meters (East, North).
    """
    half = grid_size / 2.0
    coords = (np.arange(grid_size + 1) - half) * grid_spacing
    return coords, coords.copy()


def plume_concentration(
    downwind: np.ndarray,
    crosswind: np.ndarray,
    receptor_z: float,
    source_z: float,
    emission_rate: float,
    wind_speed: float,
    stability_class,
) -> np.ndarray:
    """
    Evaluate the Gaussian plume equation in the plume frame.

        C = (Q / (2*pi*u*sigma_y*sigma_z)) *
            exp(-0.5*(crosswind/sigma_y)^2) *
            [exp(-0.5*((z-H)/sigma_z)^2) + exp(-0.5*((z+H)/sigma_z)^2)]

    Receptors less than 1 m downwind, and any receptor in dead air
    (wind below 0.1 m/s), get zero concentration.

    Returns:
        Array of concentrations, same shape as downwind.
    """
    downwind = np.asarray(downwind, dtype=float)
    crosswind = np.asarray(crosswind, dtype=float)
    concentration = np.zeros_like(downwind, dtype=float)

    if not wind_speed >= MIN_WIND_SPEED:
        return concentration

    mask = downwind >= MIN_DOWNWIND_DISTANCE_M

    if np.any(mask):
        sy, sz = compute_sigma(downwind[mask], stability_class)
        cw = crosswind[mask]
        u = wind_speed

        norm = emission_rate / (2.0 * np.pi * u * sy * sz)
        lateral = np.exp(-0.5 * (cw / sy) ** 2)

        # Vertical Gaussian with ground reflection (image source method)
        z = receptor_z
        H = source_z
        vertical = np.exp(-0.5 * ((z - H) / sz) ** 2) + np.exp(
            -0.5 * ((z + H) / sz) ** 2
        )

        concentration[mask] = norm * lateral * vertical

    return np.maximum(concentration, 0.0)


def solve_concentration_field(
    source: SourceParams,
    wind_speed: float,
    wind_direction_deg: float,
    stability_class,
) -> ConcentrationGrid:
    """
    Compute the ground-level concentration grid around a source for one hour.

    Each grid point is placed at its geographic position around the source,
    then rotated into the downwind/crosswind frame of this hour's wind.

    Args:
        source: Source characteristics and grid geometry.
        wind_speed: Wind speed in m/s.
        wind_direction_deg: Meteorological wind direction (degrees).
        stability_class: Pasquill-Gifford class A-F.

    Returns:
        ConcentrationGrid of shape (grid_size + 1, grid_size + 1).
    """
    x, y = create_grid(source.grid_size, source.grid_spacing)
    X, Y = np.meshgrid(x, y)

    d_lat, d_lon = meters_to_offset(X, Y, source.latitude)
    downwind, crosswind = to_downwind_frame(d_lat, d_lon, wind_direction_deg, source.latitude)

    values = plume_concentration(
        downwind,
        crosswind,
        receptor_z=source.receptor_height,
        source_z=source.stack_height,
        emission_rate=source.emission_rate,
        wind_speed=wind_speed,
        stability_class=stability_class,
    )
    return ConcentrationGrid(values=values, x=x, y=y, peak=float(values.max()))

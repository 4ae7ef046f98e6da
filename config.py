"""
Global configuration and constants for the Hourly Plume Dispersion Engine.
"""

from types import MappingProxyType

# --- Grid / Receptor Defaults ---
DEFAULT_GRID_SIZE = 40           # Cells per side (grid has N+1 points per axis)
GRID_EXTENT_M = 5000.0           # Default spacing is GRID_EXTENT_M / grid_size
MAX_GRID_SIZE = 50               # Largest accepted cells-per-side
MAX_GRID_EXTENT_M = 20000.0      # Largest accepted grid side (meters)
RECEPTOR_HEIGHT_M = 1.5          # Breathing height (meters)
METERS_PER_DEGREE_LAT = 111000.0 # Flat-earth conversion, valid over a few km

# --- Source / Removal Defaults ---
DEFAULT_STABILITY_CLASS = "D"  # Neutral stability
DEFAULT_MIXING_HEIGHT_M = 500.0
DEFAULT_LOSS_RATE = 0.0        # 1/s, first-order chemical loss
DEFAULT_POLLUTANT = "PM2.5"

# Dry deposition velocity per pollutant (m/s), used when none is supplied
DEPOSITION_VELOCITIES = MappingProxyType({
    "PM2.5": 0.002,
    "PM10": 0.01,
})

# --- Simulation Limits ---
MIN_DURATION_HOURS = 1
MAX_DURATION_HOURS = 168       # One week, Open-Meteo forecast horizon
SECONDS_PER_HOUR = 3600.0

# --- Numerical Floors ---
MIN_WIND_SPEED = 0.1           # m/s, below this the plume is undefined (dead air)
MIN_DOWNWIND_DISTANCE_M = 1.0  # Receptors closer than this are "at the source"
MIN_DISTANCE_KM = 0.001        # Floor for the power-law sigma evaluation
MIN_SIGMA_M = 0.5              # Floor for sigma_y / sigma_z

# --- Stability Classification ---
DAY_START_HOUR = 6             # Daytime is [DAY_START_HOUR, DAY_END_HOUR) UTC
DAY_END_HOUR = 18
HIGH_RADIATION_CLOUD_PCT = 25.0      # cloud cover below this -> strong insolation
MODERATE_RADIATION_CLOUD_PCT = 75.0  # below this -> moderate, otherwise weak
DEFAULT_CLOUD_COVER_PCT = 50.0       # Used when the forecast has no cloud cover

# --- Forecast Cache ---
FORECAST_CACHE_TTL_S = 15 * 60
CACHE_KEY_DECIMALS = 3         # ~100 m location bucketing

# --- Weather Provider ---
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_TIMEOUT_S = 10.0
OPEN_METEO_MAX_DAYS = 8        # 168 h from any hour of the current day
MANUAL_TEMPERATURE_C = 15.0    # Temperature assigned to manual-wind series

# --- Pasquill-Gifford Stability Classes ---
# Coefficients for sigma_y and sigma_z: sigma = a * x^b
# x in kilometers, sigma in meters
# Source: Martin (1976) fit, x < 1 km branch without the additive sigma_z term
DISPERSION_COEFFICIENTS = MappingProxyType({
    "A": {"sigma_y": (213.0, 0.894), "sigma_z": (440.8, 1.941)},
    "B": {"sigma_y": (156.0, 0.894), "sigma_z": (106.6, 1.149)},
    "C": {"sigma_y": (104.0, 0.894), "sigma_z": (61.0, 0.911)},
    "D": {"sigma_y": (68.0, 0.894), "sigma_z": (33.2, 0.725)},
    "E": {"sigma_y": (50.5, 0.894), "sigma_z": (22.8, 0.678)},
    "F": {"sigma_y": (34.0, 0.894), "sigma_z": (14.35, 0.740)},
})

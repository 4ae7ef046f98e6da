"""
Pasquill-Gifford Stability Classification.

Assigns an atmospheric stability class (A-F) from time of day, 10 m wind
speed and cloud cover, following the EPA Pasquill-Gifford guidance
(Turner 1970; 40 CFR Part 51, Appendix W):

  A = Extremely unstable      D = Neutral
  B = Unstable                E = Slightly stable
  C = Slightly unstable       F = Stable

The decision table is plain data: one row per (period, radiation level)
giving the class for each wind-speed bucket.
"""

import math
from enum import Enum
from typing import List, NamedTuple, Sequence, Tuple

from config import (
    DAY_START_HOUR,
    DAY_END_HOUR,
    HIGH_RADIATION_CLOUD_PCT,
    MODERATE_RADIATION_CLOUD_PCT,
    DEFAULT_CLOUD_COVER_PCT,
)


class StabilityClass(str, Enum):
    """Stability classes ordered from most to least unstable."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"

    @classmethod
    def parse(cls, value) -> "StabilityClass":
        """Accept a StabilityClass or a case-insensitive letter."""
        if isinstance(value, cls):
            return value
        letter = str(value).strip().upper()
        try:
            return cls(letter)
        except ValueError:
            raise ValueError(f"Unknown stability class '{value}'. Use A-F.") from None


# Upper bounds (exclusive, m/s) of the wind-speed buckets; the last bucket is open
WIND_BUCKET_EDGES = (2.0, 3.0, 5.0, 6.0)


class StabilityRule(NamedTuple):
    is_day: bool
    radiation: str
    classes: Tuple[str, str, str, str, str]  # one per wind bucket
    reason: str


STABILITY_TABLE: Tuple[StabilityRule, ...] = (
    StabilityRule(True, "high", ("A", "A", "B", "C", "C"), "Day (high solar radiation)"),
    StabilityRule(True, "moderate", ("B", "B", "C", "D", "D"), "Day (moderate solar radiation)"),
    StabilityRule(True, "low", ("C", "C", "D", "D", "D"), "Day (weak solar radiation, high cloud)"),
    StabilityRule(False, "high", ("F", "F", "E", "D", "D"), "Night (clear, strong cooling)"),
    StabilityRule(False, "moderate", ("E", "E", "D", "D", "D"), "Night (partly cloudy)"),
    StabilityRule(False, "low", ("D", "D", "D", "D", "D"), "Night (overcast)"),
)


def is_daytime(hour: int) -> bool:
    return DAY_START_HOUR <= (int(hour) % 24) < DAY_END_HOUR


def solar_radiation_level(cloud_cover: float) -> str:
    """Three-level insolation proxy: clear skies mean strong radiation."""
    if cloud_cover < HIGH_RADIATION_CLOUD_PCT:
        return "high"
    if cloud_cover < MODERATE_RADIATION_CLOUD_PCT:
        return "moderate"
    return "low"


def _wind_bucket(wind_speed: float) -> int:
    for i, edge in enumerate(WIND_BUCKET_EDGES):
        if wind_speed < edge:
            return i
    return len(WIND_BUCKET_EDGES)


def classify_with_reason(
    hour: int,
    wind_speed: float,
    cloud_cover: float,
) -> Tuple[StabilityClass, str]:
    """
    Classify one hour and explain which table row was used.

    Out-of-range inputs are absorbed by the bucket boundaries: negative wind
    falls in the calmest bucket, cloud cover above 100 % counts as overcast.
    NaN values fall back to calm wind and the default cloud cover.

    Returns:
        (stability_class, reason)
    """
    if math.isnan(wind_speed):
        wind_speed = 0.0
    if math.isnan(cloud_cover):
        cloud_cover = DEFAULT_CLOUD_COVER_PCT

    day = is_daytime(hour)
    radiation = solar_radiation_level(cloud_cover)
    bucket = _wind_bucket(wind_speed)

    for rule in STABILITY_TABLE:
        if rule.is_day == day and rule.radiation == radiation:
            return StabilityClass(rule.classes[bucket]), rule.reason

    raise AssertionError(f"No stability rule for day={day}, radiation={radiation}")


def classify(hour: int, wind_speed: float, cloud_cover: float) -> StabilityClass:
    """Return the Pasquill-Gifford class for an hour of day (UTC)."""
    stability_class, _ = classify_with_reason(hour, wind_speed, cloud_cover)
    return stability_class


def classify_series(samples: Sequence) -> List[dict]:
    """
    Classify every sample of a meteorological series.

    Args:
        samples: MeteoSample-like objects with ``timestamp``, ``wind_speed``
                 and optional ``cloud_cover``.

    Returns:
        List of dicts with keys 'hour', 'stability_class', 'reason'.
    """
    classified = []
    for sample in samples:
        cloud = sample.cloud_cover
        if cloud is None:
            cloud = DEFAULT_CLOUD_COVER_PCT
        hour = sample.timestamp.hour
        stability_class, reason = classify_with_reason(hour, sample.wind_speed, cloud)
        classified.append({
            "hour": hour,
            "stability_class": stability_class,
            "reason": reason,
        })
    return classified

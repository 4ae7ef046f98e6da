"""
Hourly Dispersion Engine.

Drives the Gaussian plume solver across an ordered meteorological series.
For each hour the engine:

  1. Clamps that hour's meteorology into its physical range.
  2. Picks the stability class (fixed, or classified from the hour's weather).
  3. Solves the ground-level concentration grid.
  4. Attenuates the grid by deposition and chemical loss accumulated over
     all previous hours (hour 0 is undecayed, each later hour adds 3600 s).

The loop is strictly sequential since each hour's decay depends on the
elapsed time of every hour before it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from config import SECONDS_PER_HOUR, DEFAULT_CLOUD_COVER_PCT
from data.weather import MeteoSample
from models.decay import apply_decay
from models.gaussian_plume import ConcentrationGrid, solve_concentration_field
from models.source import SourceParams
from models.stability import StabilityClass, classify

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class HourResult:
    """The decayed concentration field for one simulated hour."""

    hour: int
    timestamp: datetime
    grid: ConcentrationGrid
    wind_speed: float
    wind_direction: float
    stability_class: StabilityClass

    @property
    def max_concentration(self) -> float:
        return self.grid.peak

    def to_dict(self) -> dict:
        return {
            "hour": self.hour,
            "time": self.timestamp.isoformat(),
            "max_concentration": self.max_concentration,
            "concentration_grid": self.grid.values.tolist(),
            "grid_points": {"x": self.grid.x.tolist(), "y": self.grid.y.tolist()},
            "wind_speed": self.wind_speed,
            "wind_direction": self.wind_direction,
            "stability_class": self.stability_class.value,
        }


@dataclass(frozen=True)
class RunStatistics:
    """Summary over all hours of a run.

    peak_concentration is the largest hourly peak (earliest hour on ties);
    average_concentration is the mean of the hourly peaks.
    """

    peak_concentration: float
    peak_time: Optional[datetime]
    peak_hour: int
    average_concentration: float

    @classmethod
    def from_results(cls, results: Sequence[HourResult]) -> "RunStatistics":
        if not results:
            return cls(0.0, None, 0, 0.0)

        peak = results[0]
        total = 0.0
        for result in results:
            total += result.max_concentration
            if result.max_concentration > peak.max_concentration:
                peak = result

        return cls(
            peak_concentration=peak.max_concentration,
            peak_time=peak.timestamp,
            peak_hour=peak.hour,
            average_concentration=total / len(results),
        )

    def to_dict(self) -> dict:
        return {
            "peak_concentration": self.peak_concentration,
            "peak_time": self.peak_time.isoformat() if self.peak_time else "",
            "peak_hour": self.peak_hour,
            "average_concentration": self.average_concentration,
        }


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Ordered hourly results plus run statistics."""

    results: List[HourResult]
    stats: RunStatistics

    @property
    def hours(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        """Plain JSON-compatible representation."""
        return {
            "results": [r.to_dict() for r in self.results],
            "stats": self.stats.to_dict(),
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def resolve_stability(
    sample: MeteoSample,
    fixed_class: Optional[StabilityClass] = None,
) -> StabilityClass:
    """Fixed class if given, otherwise classify from the hour's weather."""
    if fixed_class is not None:
        return StabilityClass.parse(fixed_class)
    cloud = sample.cloud_cover if sample.cloud_cover is not None else DEFAULT_CLOUD_COVER_PCT
    return classify(sample.timestamp.hour, sample.wind_speed, cloud)


def simulate_hour(
    hour: int,
    sample: MeteoSample,
    source: SourceParams,
    elapsed_seconds: float,
    fixed_class: Optional[StabilityClass] = None,
) -> HourResult:
    """
    Solve and decay a single hour.

    Args:
        hour: Index of the hour within the run.
        sample: That hour's meteorology (clamped before use).
        source: Source characteristics and grid geometry.
        elapsed_seconds: Simulation time elapsed before this hour.
        fixed_class: Stability class override; classified per hour if None.

    Returns:
        HourResult with the decayed grid.
    """
    sample = sample.clamped()
    stability_class = resolve_stability(sample, fixed_class)

    raw = solve_concentration_field(
        source,
        wind_speed=sample.wind_speed,
        wind_direction_deg=sample.wind_direction,
        stability_class=stability_class,
    )
    grid = apply_decay(raw, source, elapsed_seconds)

    return HourResult(
        hour=hour,
        timestamp=sample.timestamp,
        grid=grid,
        wind_speed=sample.wind_speed,
        wind_direction=sample.wind_direction,
        stability_class=stability_class,
    )


def run_simulation(
    meteo: Sequence[MeteoSample],
    source: SourceParams,
    stability_class=None,
) -> SimulationResult:
    """
    Run the hourly dispersion loop over a meteorological series.

    Args:
        meteo: One MeteoSample per hour, in order.
        source: Source characteristics and grid geometry.
        stability_class: Fixed class for every hour; when None each hour is
            classified from its own meteorology.

    Returns:
        SimulationResult with one HourResult per sample.
    """
    if not meteo:
        raise ValueError("Meteorological series must contain at least one hour.")

    fixed_class = None if stability_class is None else StabilityClass.parse(stability_class)

    results: List[HourResult] = []
    cumulative_time_s = 0.0
    for hour, sample in enumerate(meteo):
        results.append(simulate_hour(hour, sample, source, cumulative_time_s, fixed_class))
        cumulative_time_s += SECONDS_PER_HOUR

    stats = RunStatistics.from_results(results)
    logger.debug(
        "Simulated %d hours: peak %.3e at hour %d, mean of peaks %.3e",
        len(results),
        stats.peak_concentration,
        stats.peak_hour,
        stats.average_concentration,
    )
    return SimulationResult(results=results, stats=stats)

#!/usr/bin/env python3
"""
Hourly Dispersion Run.

Runs the plume engine for one source and prints the hourly peak table and
run statistics.  Uses the live Open-Meteo forecast unless a manual wind is
given; falls back to synthetic meteorology when the forecast is unavailable.

Usage:
    uv run python experiments/run_dispersion.py --lat 40.7128 --lon -74.006
    uv run python experiments/run_dispersion.py --lat 40.7 --lon -74.0 \\
        --wind-speed 5 --wind-direction 180 --stability D --hours 6
    uv run python experiments/run_dispersion.py --lat 40.7 --lon -74.0 --auto-stability
"""

import sys
import os
import argparse
import json
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config import (
    DEFAULT_GRID_SIZE,
    DEFAULT_MIXING_HEIGHT_M,
    DEFAULT_POLLUTANT,
    DEPOSITION_VELOCITIES,
)
from data.forecast_cache import ForecastCache
from simulation.params import InvalidParameterError, SimulationParams
from simulation.runner import SimulationRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hourly Gaussian plume dispersion run")
    parser.add_argument("--lat", type=float, required=True, help="Source latitude")
    parser.add_argument("--lon", type=float, required=True, help="Source longitude")
    parser.add_argument("--emission-rate", type=float, default=10.0, help="Q in g/s")
    parser.add_argument("--stack-height", type=float, default=50.0, help="H in meters")
    parser.add_argument("--hours", type=int, default=24, help="Simulated hours (1-168)")
    parser.add_argument("--stability", default=None, help="Fixed stability class A-F")
    parser.add_argument("--auto-stability", action="store_true",
                        help="Classify stability per hour from the weather")
    parser.add_argument("--wind-speed", type=float, default=None,
                        help="Manual wind speed (m/s); disables the forecast")
    parser.add_argument("--wind-direction", type=float, default=None,
                        help="Manual wind direction (degrees FROM)")
    parser.add_argument("--pollutant", default=DEFAULT_POLLUTANT,
                        choices=sorted(DEPOSITION_VELOCITIES))
    parser.add_argument("--grid-size", type=int, default=DEFAULT_GRID_SIZE)
    parser.add_argument("--mixing-height", type=float, default=DEFAULT_MIXING_HEIGHT_M)
    parser.add_argument("--loss-rate", type=float, default=0.0, help="1/s")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def print_table(result):
    print(f"\n  {'Hour':>4}  {'Time':<25}  {'Wind':>6}  {'Dir':>6}  {'Class':>5}  {'Peak (g/m3)':>12}")
    print(f"  {'-'*4}  {'-'*25}  {'-'*6}  {'-'*6}  {'-'*5}  {'-'*12}")
    for r in result.results:
        print(
            f"  {r.hour:>4}  {r.timestamp.isoformat():<25}  {r.wind_speed:>6.2f}  "
            f"{r.wind_direction:>6.1f}  {r.stability_class.value:>5}  {r.max_concentration:>12.4e}"
        )

    stats = result.stats
    print(f"\n{'='*70}")
    print(f"  Peak concentration:    {stats.peak_concentration:.4e} g/m3")
    print(f"  Peak hour:             {stats.peak_hour} ({stats.peak_time.isoformat()})")
    print(f"  Mean of hourly peaks:  {stats.average_concentration:.4e} g/m3")
    print(f"{'='*70}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    manual = args.wind_speed is not None or args.wind_direction is not None
    try:
        params = SimulationParams(
            latitude=args.lat,
            longitude=args.lon,
            emission_rate=args.emission_rate,
            stack_height=args.stack_height,
            duration=args.hours,
            stability_class=args.stability,
            auto_map_stability=args.auto_stability,
            use_auto_weather=not manual,
            wind_speed=args.wind_speed,
            wind_direction=args.wind_direction,
            pollutant_type=args.pollutant,
            grid_size=args.grid_size,
            mixing_height=args.mixing_height,
            loss_rate=args.loss_rate,
        )
    except InvalidParameterError as e:
        print(f"Invalid parameters: {e}", file=sys.stderr)
        return 2

    runner = SimulationRunner(cache=ForecastCache())
    result = runner.run(params)

    if args.json:
        print(json.dumps(result.to_dict()))
    else:
        print_table(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""End-to-end integration tests for the full pipeline."""

import json
import math
from datetime import datetime, timedelta

import numpy as np
import pytest

from data.forecast_cache import ForecastCache
from data.weather import OpenMeteoProvider, SyntheticWeatherProvider
from experiments.run_dispersion import main
from simulation.params import SimulationParams
from simulation.runner import SimulationRunner


class _Response:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


class _Session:
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    def get(self, url, params=None, timeout=None):
        self.calls += 1
        return _Response(self.payload)


def _payload(hours):
    base = datetime(2024, 6, 1)
    return {
        "hourly": {
            "time": [(base + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M") for h in range(hours)],
            "wind_speed_10m": [3.0 + (h % 5) for h in range(hours)],
            "wind_direction_10m": [(15.0 * h) % 360 for h in range(hours)],
            "temperature_2m": [20.0] * hours,
            "cloud_cover": [10.0 if h % 2 else 90.0 for h in range(hours)],
        }
    }


class TestFullPipeline:
    """Request -> meteorology -> stability -> plume -> decay -> statistics."""

    def test_single_hour_manual_wind(self, start_time):
        runner = SimulationRunner(start=start_time)
        params = SimulationParams(
            latitude=40.7128,
            longitude=-74.006,
            emission_rate=10.0,
            stack_height=50.0,
            duration=1,
            stability_class="D",
            use_auto_weather=False,
            wind_speed=5.0,
            wind_direction=180.0,
            grid_size=40,
        )
        result = runner.run(params)

        assert result.hours == 1
        assert result.stats.peak_hour == 0
        assert math.isfinite(result.stats.peak_concentration)
        assert result.stats.peak_concentration > 0

        grid = result.results[0].grid
        assert grid.values.shape == (41, 41)
        px, py = grid.peak_location()
        assert px == 0.0
        assert py > 0

    def test_forecast_through_cache_with_auto_stability(self, start_time, fake_clock):
        session = _Session(_payload(48))
        cache = ForecastCache(clock=fake_clock)
        provider = OpenMeteoProvider(session=session, start=start_time)
        runner = SimulationRunner(provider=provider, cache=cache)
        params = SimulationParams(
            latitude=48.8566,
            longitude=2.3522,
            emission_rate=5.0,
            stack_height=20.0,
            duration=24,
            auto_map_stability=True,
            pollutant_type="PM10",
            grid_size=20,
        )

        first = runner.run(params)
        second = runner.run(params)

        assert session.calls == 1
        assert len(first.results) == 24
        assert len({r.stability_class for r in first.results}) > 1
        for a, b in zip(first.results, second.results):
            np.testing.assert_array_equal(a.grid.values, b.grid.values)

        peaks = [r.max_concentration for r in first.results]
        assert first.stats.peak_concentration == max(peaks)
        assert all(r.grid.values.min() >= 0 for r in first.results)

    def test_result_is_json_serializable(self, start_time):
        runner = SimulationRunner(
            provider=SyntheticWeatherProvider(start_time), start=start_time
        )
        params = SimulationParams(
            latitude=0.0, longitude=0.0, emission_rate=1.0, stack_height=10.0,
            duration=3, grid_size=10,
        )
        data = json.loads(json.dumps(runner.run(params).to_dict()))
        assert len(data["results"]) == 3
        assert data["stats"]["peak_hour"] in (0, 1, 2)


class TestCommandLine:
    def test_manual_wind_table(self, capsys):
        code = main([
            "--lat", "40.7", "--lon", "-74.0", "--hours", "3",
            "--wind-speed", "5", "--wind-direction", "180",
            "--stability", "D", "--grid-size", "10",
        ])
        out = capsys.readouterr().out
        assert code == 0
        assert "Peak concentration" in out

    def test_json_output(self, capsys):
        code = main([
            "--lat", "40.7", "--lon", "-74.0", "--hours", "2",
            "--wind-speed", "3", "--wind-direction", "90",
            "--grid-size", "10", "--json",
        ])
        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert len(data["results"]) == 2

    @pytest.mark.parametrize(
        "extra",
        [
            ["--hours", "0"],
            ["--stability", "Z"],
            ["--grid-size", "11"],
            ["--wind-speed", "-1"],
        ],
    )
    def test_invalid_request_exit_code(self, capsys, extra):
        argv = ["--lat", "40.7", "--lon", "-74.0", "--wind-direction", "180"] + extra
        if "--wind-speed" not in extra:
            argv += ["--wind-speed", "4"]
        assert main(argv) == 2
        assert "Invalid parameters" in capsys.readouterr().err

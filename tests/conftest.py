"""Shared fixtures for the Hourly Plume Dispersion Engine test suite."""

import sys
import os
from datetime import datetime, timezone

import pytest

# Ensure project root is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from data.weather import ConstantWindProvider
from models.source import SourceParams


@pytest.fixture
def start_time():
    """Midnight UTC, so hour index equals hour of day for the first day."""
    return datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def stack_source():
    """A 50 m stack emitting 10 g/s in New York, 40x40 grid at 125 m."""
    return SourceParams(
        emission_rate=10.0,
        stack_height=50.0,
        latitude=40.7128,
        longitude=-74.006,
        deposition_velocity=0.0,
        loss_rate=0.0,
        grid_size=40,
        grid_spacing=125.0,
    )


@pytest.fixture
def small_source():
    """A ground-level release on a small 20x20 grid at 50 m for fast tests."""
    return SourceParams(
        emission_rate=1.0,
        stack_height=0.0,
        latitude=52.0,
        longitude=13.4,
        deposition_velocity=0.0,
        loss_rate=0.0,
        grid_size=20,
        grid_spacing=50.0,
    )


@pytest.fixture
def south_wind_series(start_time):
    """Six hours of steady 5 m/s wind from the south."""
    provider = ConstantWindProvider(wind_speed=5.0, wind_direction=180.0, start=start_time)
    return provider.get_forecast(40.7128, -74.006, 6)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()

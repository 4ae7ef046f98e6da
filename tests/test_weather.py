"""Tests for weather providers and meteorological series helpers."""

import math
from datetime import datetime, timedelta, timezone

import pytest
import requests

from data.weather import (
    ConstantWindProvider,
    HourlyWindOverride,
    MeteoSample,
    OpenMeteoProvider,
    SyntheticWeatherProvider,
    UpstreamUnavailableError,
    WeatherProvider,
    apply_wind_overrides,
    validate_forecast,
)


FORECAST_START = datetime(2024, 6, 1, 0, tzinfo=timezone.utc)


def _sample(speed=3.0, direction=270.0, cloud=None, hour=0):
    return MeteoSample(
        timestamp=datetime(2024, 6, 1, hour, tzinfo=timezone.utc),
        wind_speed=speed,
        wind_direction=direction,
        temperature=15.0,
        cloud_cover=cloud,
    )


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self._payload = payload
        self.status_code = status
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    """Records requests and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def open_meteo_payload(hours, start="2024-06-01T00:00"):
    base = datetime.fromisoformat(start)
    times = [(base + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M") for h in range(hours)]
    return {
        "latitude": 40.71,
        "longitude": -74.01,
        "hourly": {
            "time": times,
            "wind_speed_10m": [0.0] + [4.0] * (hours - 1),
            "wind_direction_10m": [200.0] * hours,
            "temperature_2m": [18.5] * hours,
            "cloud_cover": [30.0] * hours,
        },
    }


class TestMeteoSample:
    def test_clamps_negative_speed(self):
        assert _sample(speed=-2.0).clamped().wind_speed == 0.0

    def test_wraps_direction(self):
        assert _sample(direction=370.0).clamped().wind_direction == pytest.approx(10.0)
        assert _sample(direction=-90.0).clamped().wind_direction == pytest.approx(270.0)
        assert _sample(direction=360.0).clamped().wind_direction == 0.0

    def test_clamps_cloud_cover(self):
        assert _sample(cloud=120.0).clamped().cloud_cover == 100.0
        assert _sample(cloud=-5.0).clamped().cloud_cover == 0.0

    def test_non_finite_values(self):
        s = MeteoSample(
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            wind_speed=float("nan"),
            wind_direction=float("inf"),
            temperature=10.0,
            cloud_cover=float("nan"),
        ).clamped()
        assert s.wind_speed == 0.0
        assert s.wind_direction == 0.0
        assert s.cloud_cover is None

    def test_valid_sample_unchanged(self):
        s = _sample(speed=4.2, direction=123.0, cloud=40.0)
        assert s.clamped() == s

    def test_is_immutable(self):
        with pytest.raises(AttributeError):
            _sample().wind_speed = 1.0


class TestValidateForecast:
    def test_empty(self):
        assert validate_forecast([]) == ["Forecast data must be a non-empty list"]

    def test_valid(self):
        assert validate_forecast([_sample(), _sample(hour=1)]) == []

    def test_reports_each_problem(self):
        errors = validate_forecast([_sample(speed=-1.0), _sample(direction=400.0)])
        assert errors == [
            "Point 0: wind speed must be non-negative",
            "Point 1: wind direction must be between 0 and 360 degrees",
        ]


class TestApplyWindOverrides:
    def test_replaces_by_index(self):
        samples = [_sample(hour=h) for h in range(4)]
        out = apply_wind_overrides(samples, [HourlyWindOverride(2, 9.0, 45.0)])
        assert out[2].wind_speed == 9.0
        assert out[2].wind_direction == 45.0
        assert out[2].timestamp == samples[2].timestamp
        assert out[:2] == samples[:2]
        assert out[3] == samples[3]

    def test_out_of_range_hour_ignored(self):
        samples = [_sample(hour=h) for h in range(2)]
        assert apply_wind_overrides(samples, [HourlyWindOverride(5, 1.0, 0.0)]) == samples

    def test_later_override_wins(self):
        samples = [_sample()]
        out = apply_wind_overrides(
            samples, [HourlyWindOverride(0, 1.0, 10.0), HourlyWindOverride(0, 2.0, 20.0)]
        )
        assert out[0].wind_speed == 2.0

    def test_input_not_mutated(self):
        samples = [_sample()]
        apply_wind_overrides(samples, [HourlyWindOverride(0, 8.0, 8.0)])
        assert samples[0].wind_speed == 3.0


class TestConstantWindProvider:
    def test_is_weather_provider(self):
        assert isinstance(ConstantWindProvider(3.0, 270.0), WeatherProvider)

    def test_series(self, start_time):
        series = ConstantWindProvider(5.0, 180.0, start=start_time).get_forecast(0, 0, 5)
        assert len(series) == 5
        assert all(s.wind_speed == 5.0 and s.wind_direction == 180.0 for s in series)
        assert all(s.temperature == 15.0 for s in series)
        assert [s.timestamp.hour for s in series] == [0, 1, 2, 3, 4]

    def test_default_start_is_current_hour(self):
        series = ConstantWindProvider(5.0, 180.0).get_forecast(0, 0, 1)
        ts = series[0].timestamp
        assert ts.tzinfo is not None
        assert ts.minute == 0 and ts.second == 0


class TestSyntheticWeatherProvider:
    def test_is_weather_provider(self):
        assert isinstance(SyntheticWeatherProvider(), WeatherProvider)

    def test_deterministic(self, start_time):
        a = SyntheticWeatherProvider(start_time).get_forecast(0, 0, 48)
        b = SyntheticWeatherProvider(start_time).get_forecast(10, 10, 48)
        assert a == b

    def test_first_hour_values(self, start_time):
        first = SyntheticWeatherProvider(start_time).get_forecast(0, 0, 1)[0]
        assert first.wind_speed == pytest.approx(5.0)
        assert first.wind_direction == pytest.approx(210.0)
        assert first.temperature == pytest.approx(15.0)

    def test_ranges(self, start_time):
        for s in SyntheticWeatherProvider(start_time).get_forecast(0, 0, 168):
            assert s.wind_speed >= 0.5
            assert 0.0 <= s.wind_direction < 360.0
            assert 7.0 <= s.temperature <= 23.0

    def test_hourly_timestamps(self, start_time):
        series = SyntheticWeatherProvider(start_time).get_forecast(0, 0, 3)
        assert series[2].timestamp - series[0].timestamp == timedelta(hours=2)


class TestOpenMeteoProvider:
    def test_parses_hourly_forecast(self):
        session = FakeSession(FakeResponse(open_meteo_payload(48)))
        series = OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(40.7128, -74.006, 30)

        assert len(series) == 30
        assert series[1].wind_speed == 4.0
        assert series[1].wind_direction == 200.0
        assert series[1].temperature == 18.5
        assert series[1].cloud_cover == 30.0
        assert series[0].timestamp == datetime(2024, 6, 1, 0, tzinfo=timezone.utc)

    def test_wind_speed_floored(self):
        session = FakeSession(FakeResponse(open_meteo_payload(24)))
        series = OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 1)
        assert series[0].wind_speed == pytest.approx(0.1)

    def test_request_parameters(self):
        session = FakeSession(FakeResponse(open_meteo_payload(48)))
        provider = OpenMeteoProvider(start=FORECAST_START, session=session, timeout=3.0)
        provider.get_forecast(40.7128, -74.006, 30)

        call = session.calls[0]
        assert call["url"] == "https://api.open-meteo.com/v1/forecast"
        assert call["timeout"] == 3.0
        assert call["params"]["forecast_days"] == 2
        assert call["params"]["wind_speed_unit"] == "ms"
        assert call["params"]["timezone"] == "UTC"
        assert "cloud_cover" in call["params"]["hourly"]

    def test_week_from_midnight_needs_seven_days(self):
        session = FakeSession(FakeResponse(open_meteo_payload(168)))
        OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 168)
        assert session.calls[0]["params"]["forecast_days"] == 7

    def test_week_from_afternoon_needs_eight_days(self):
        afternoon = FORECAST_START + timedelta(hours=15)
        session = FakeSession(FakeResponse(open_meteo_payload(192)))
        series = OpenMeteoProvider(start=afternoon, session=session).get_forecast(0.0, 0.0, 168)
        assert session.calls[0]["params"]["forecast_days"] == 8
        assert len(series) == 168
        assert series[0].timestamp == afternoon

    def test_series_starts_at_current_hour(self):
        """Hours of the day that have already passed are dropped."""
        afternoon = FORECAST_START + timedelta(hours=15)
        session = FakeSession(FakeResponse(open_meteo_payload(48)))
        series = OpenMeteoProvider(start=afternoon, session=session).get_forecast(0.0, 0.0, 12)

        assert session.calls[0]["params"]["forecast_days"] == 2
        assert len(series) == 12
        assert series[0].timestamp == afternoon
        assert series[-1].timestamp == afternoon + timedelta(hours=11)

    def test_stale_payload_raises(self):
        later = FORECAST_START + timedelta(days=3)
        session = FakeSession(FakeResponse(open_meteo_payload(48)))
        with pytest.raises(UpstreamUnavailableError, match="0 hours"):
            OpenMeteoProvider(start=later, session=session).get_forecast(0.0, 0.0, 6)

    def test_missing_cloud_cover_is_none(self):
        payload = open_meteo_payload(24)
        del payload["hourly"]["cloud_cover"]
        provider = OpenMeteoProvider(start=FORECAST_START, session=FakeSession(FakeResponse(payload)))
        series = provider.get_forecast(0, 0, 2)
        assert series[0].cloud_cover is None

    def test_short_series_raises(self):
        session = FakeSession(FakeResponse(open_meteo_payload(24)))
        with pytest.raises(UpstreamUnavailableError, match="24 hours"):
            OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 30)

    def test_http_error_raises(self):
        session = FakeSession(FakeResponse(status=503))
        with pytest.raises(UpstreamUnavailableError, match="request failed"):
            OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 6)

    def test_connection_error_raises(self):
        session = FakeSession(error=requests.ConnectionError("no route to host"))
        with pytest.raises(UpstreamUnavailableError):
            OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 6)

    def test_invalid_json_raises(self):
        session = FakeSession(FakeResponse(bad_json=True))
        with pytest.raises(UpstreamUnavailableError, match="invalid JSON"):
            OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 6)

    def test_malformed_payload_raises(self):
        session = FakeSession(FakeResponse({"hourly": {"time": ["2024-06-01T00:00"]}}))
        with pytest.raises(UpstreamUnavailableError, match="Malformed"):
            OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 1)

    def test_null_values_raise(self):
        payload = open_meteo_payload(6)
        payload["hourly"]["wind_speed_10m"][3] = None
        session = FakeSession(FakeResponse(payload))
        with pytest.raises(UpstreamUnavailableError):
            OpenMeteoProvider(start=FORECAST_START, session=session).get_forecast(0.0, 0.0, 6)

    def test_uses_requests_module_by_default(self, monkeypatch):
        session = FakeSession(FakeResponse(open_meteo_payload(24)))
        monkeypatch.setattr(requests, "get", session.get)
        series = OpenMeteoProvider(start=FORECAST_START).get_forecast(1.0, 2.0, 3)
        assert len(series) == 3
        assert math.isclose(session.calls[0]["params"]["latitude"], 1.0)

"""Tests for sample payload validation."""

from __future__ import annotations

import math

import pytest

from vanzentrale.core.errors import ValidationError
from vanzentrale.core.models import WeatherCondition
from vanzentrale.core.validation import parse_sample, parse_weather


def test_valid_payload(payload_factory):
    sample = parse_sample(payload_factory())
    assert sample.vehicle_id == "van-1"
    assert sample.timestamp_ms is None
    assert sample.temp_in_c == 21.5
    assert sample.water_level_pct == 60
    assert isinstance(sample.pitch_deg, float)


def test_missing_and_null_fields_are_none():
    sample = parse_sample({"vehicle_id": "van-1", "gas_ppm": None})
    assert sample.gas_ppm is None
    assert sample.temp_in_c is None
    assert sample.weather is None


def test_zero_is_not_absence():
    sample = parse_sample({"vehicle_id": "van-1", "gas_ppm": 0, "water_level_pct": 0})
    assert sample.gas_ppm == 0
    assert sample.water_level_pct == 0


@pytest.mark.parametrize("field, value", [
    ("temp_in_c", 200),
    ("temp_out_c", -40.5),
    ("humidity_pct", 100.1),
    ("battery_board_v", 16.01),
    ("battery_start_v", -0.1),
    ("water_level_pct", 101),
    ("gas_ppm", -1),
    ("pitch_deg", 90.5),
    ("roll_deg", -91),
])
def test_out_of_range_rejected(payload_factory, field, value):
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(**{field: value}))
    assert list(exc_info.value.fields) == [field]


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_rejected(payload_factory, value):
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(temp_out_c=value))
    assert exc_info.value.fields["temp_out_c"] == "must be finite"


def test_range_edges_accepted(payload_factory):
    sample = parse_sample(payload_factory(
        temp_in_c=85, temp_out_c=-40, humidity_pct=0, battery_start_v=16,
        water_level_pct=100, pitch_deg=-90, roll_deg=90,
    ))
    assert sample.temp_in_c == 85.0
    assert sample.roll_deg == 90.0


def test_booleans_are_not_numbers(payload_factory):
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(gas_ppm=True, humidity_pct=False))
    assert set(exc_info.value.fields) == {"gas_ppm", "humidity_pct"}


def test_integer_fields(payload_factory):
    assert parse_sample(payload_factory(water_level_pct=40.0)).water_level_pct == 40
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(water_level_pct=40.5))
    assert exc_info.value.fields["water_level_pct"] == "must be an integer"


@pytest.mark.parametrize("vehicle_id", ["", "   ", None, 42, "x" * 129])
def test_bad_vehicle_id(payload_factory, vehicle_id):
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(vehicle_id=vehicle_id))
    assert "vehicle_id" in exc_info.value.fields


@pytest.mark.parametrize("timestamp", [-1, 1.5, "now", True])
def test_bad_timestamp(payload_factory, timestamp):
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(timestamp_ms=timestamp))
    assert "timestamp_ms" in exc_info.value.fields


def test_integral_float_timestamp_accepted(payload_factory):
    sample = parse_sample(payload_factory(timestamp_ms=1.7e12))
    assert sample.timestamp_ms == 1_700_000_000_000
    assert isinstance(sample.timestamp_ms, int)


def test_future_timestamp_rejected(payload_factory):
    now = 1_700_000_000_000
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(payload_factory(timestamp_ms=10**18), now_ms=now, max_skew_ms=300_000)
    assert "ahead of server clock" in exc_info.value.fields["timestamp_ms"]

    sample = parse_sample(payload_factory(timestamp_ms=now + 300_000),
                          now_ms=now, max_skew_ms=300_000)
    assert sample.timestamp_ms == now + 300_000


def test_non_object_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_sample(["van-1"])
    assert "body" in exc_info.value.fields


def test_error_message_names_fields(payload_factory):
    with pytest.raises(ValidationError, match="gas_ppm, temp_in_c"):
        parse_sample(payload_factory(temp_in_c=100, gas_ppm=-5))


def test_weather_parsed(payload_factory):
    sample = parse_sample(payload_factory(weather={
        "condition": "Cloudy", "external_temp_c": 11, "forecast_text": "Dry",
    }))
    assert sample.weather.condition is WeatherCondition.CLOUDY
    assert sample.weather.external_temp_c == 11.0
    assert sample.weather.forecast_text == "Dry"


def test_malformed_weather_never_rejects(payload_factory):
    sample = parse_sample(payload_factory(weather={
        "condition": "Blizzard", "external_temp_c": "warm", "forecast_text": 3,
    }))
    assert sample.weather.condition is None
    assert sample.weather.external_temp_c is None
    assert sample.weather.forecast_text is None

    assert parse_sample(payload_factory(weather="sunny")).weather is None


def test_parse_weather_none():
    assert parse_weather(None) is None

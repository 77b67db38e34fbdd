"""Sample validation: converts a JSON payload into a Sample or rejects it.

The policy is fail-closed: any field that is not finite, has the wrong type,
or lies outside its plausible range rejects the whole sample. Values are
never clamped. Missing or null fields are stored as ``None``.
"""

from __future__ import annotations

import math
from typing import Any

import structlog

from vanzentrale.core.errors import ValidationError
from vanzentrale.core.models import Sample, WeatherCondition, WeatherData

log = structlog.get_logger()

MAX_VEHICLE_ID_LENGTH = 128

# Plausible ranges (inclusive).
FLOAT_RANGES: dict[str, tuple[float, float]] = {
    "temp_in_c": (-40.0, 85.0),
    "temp_out_c": (-40.0, 85.0),
    "humidity_pct": (0.0, 100.0),
    "battery_board_v": (0.0, 16.0),
    "battery_start_v": (0.0, 16.0),
    "pitch_deg": (-90.0, 90.0),
    "roll_deg": (-90.0, 90.0),
}

# Weather comes from an external collaborator; only finiteness is checked.
_WEATHER_TEMP_RANGE = (-math.inf, math.inf)

# ``None`` as upper bound means unbounded.
INT_RANGES: dict[str, tuple[int, int | None]] = {
    "water_level_pct": (0, 100),
    "gas_ppm": (0, None),
}

_TIMESTAMP_RANGE = (0, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_float(name: str, value: Any, errors: dict[str, str],
                 bounds: tuple[float, float] | None = None) -> float | None:
    if value is None:
        return None
    if not _is_number(value):
        errors[name] = "must be a number"
        return None
    try:
        value = float(value)
    except OverflowError:
        value = math.inf
    if not math.isfinite(value):
        errors[name] = "must be finite"
        return None
    lo, hi = bounds or FLOAT_RANGES[name]
    if not lo <= value <= hi:
        errors[name] = f"out of range [{lo:g}, {hi:g}]"
        return None
    return value


def _check_int(name: str, value: Any, errors: dict[str, str],
               bounds: tuple[int, int | None] | None = None) -> int | None:
    if value is None:
        return None
    if not _is_number(value):
        errors[name] = "must be an integer"
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            errors[name] = "must be finite"
            return None
        if not value.is_integer():
            errors[name] = "must be an integer"
            return None
        value = int(value)
    lo, hi = bounds or INT_RANGES[name]
    if value < lo or (hi is not None and value > hi):
        bound = f"[{lo}, {hi}]" if hi is not None else f">= {lo}"
        errors[name] = f"out of range {bound}"
        return None
    return value


def parse_weather(raw: Any) -> WeatherData | None:
    """Best-effort weather parsing. Malformed parts become ``None``."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        log.warning("weather_ignored", reason="not an object")
        return None

    condition = None
    cond_raw = raw.get("condition")
    if cond_raw is not None:
        try:
            condition = WeatherCondition(cond_raw)
        except ValueError:
            log.warning("weather_condition_unknown", condition=str(cond_raw)[:32])

    temp = raw.get("external_temp_c")
    if temp is not None:
        errors: dict[str, str] = {}
        temp = _check_float("external_temp_c", temp, errors, _WEATHER_TEMP_RANGE)
        if errors:
            log.warning("weather_temp_ignored", reason=errors["external_temp_c"])

    forecast = raw.get("forecast_text")
    if forecast is not None and not isinstance(forecast, str):
        forecast = None

    return WeatherData(
        condition=condition,
        external_temp_c=temp,
        forecast_text=forecast,
    )


def parse_sample(payload: Any, now_ms: int | None = None,
                 max_skew_ms: int | None = None) -> Sample:
    """Validate a decoded JSON payload and build a Sample.

    When ``now_ms`` and ``max_skew_ms`` are given, a client timestamp more
    than ``max_skew_ms`` ahead of ``now_ms`` is rejected.

    Raises ValidationError naming every offending field.
    """
    if not isinstance(payload, dict):
        raise ValidationError({"body": "must be a JSON object"})

    errors: dict[str, str] = {}

    vehicle_id = payload.get("vehicle_id")
    if not isinstance(vehicle_id, str) or not vehicle_id.strip():
        errors["vehicle_id"] = "is required"
    elif len(vehicle_id) > MAX_VEHICLE_ID_LENGTH:
        errors["vehicle_id"] = f"longer than {MAX_VEHICLE_ID_LENGTH} characters"

    timestamp_ms = _check_int("timestamp_ms", payload.get("timestamp_ms"), errors,
                              _TIMESTAMP_RANGE)
    if (timestamp_ms is not None and now_ms is not None and max_skew_ms is not None
            and timestamp_ms > now_ms + max_skew_ms):
        errors["timestamp_ms"] = (
            f"more than {max_skew_ms / 1000:g}s ahead of server clock")

    floats = {name: _check_float(name, payload.get(name), errors) for name in FLOAT_RANGES}
    ints = {name: _check_int(name, payload.get(name), errors) for name in INT_RANGES}

    if errors:
        raise ValidationError(errors)

    return Sample(
        vehicle_id=vehicle_id,
        timestamp_ms=timestamp_ms,
        weather=parse_weather(payload.get("weather")),
        **floats,
        **ints,
    )

"""Vanzentrale: core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the boundary.

Every sensor reading is optional. ``None`` means the node did not report the
value; it is never replaced by zero or a placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class WeatherCondition(str, Enum):
    SUNNY = "Sunny"
    CLOUDY = "Cloudy"
    RAIN = "Rain"


class AlertKind(str, Enum):
    GAS_ALARM = "gas_alarm"
    STARTER_BATTERY_LOW = "starter_battery_low"
    UNLEVEL = "unlevel"


@dataclass(frozen=True)
class WeatherData:
    condition: WeatherCondition | None = None
    external_temp_c: float | None = None
    forecast_text: str | None = None

    def to_dict(self) -> dict:
        return {
            "condition": self.condition.value if self.condition else None,
            "external_temp_c": self.external_temp_c,
            "forecast_text": self.forecast_text,
        }


@dataclass(frozen=True)
class Sample:
    vehicle_id: str
    timestamp_ms: int | None = None
    temp_in_c: float | None = None
    temp_out_c: float | None = None
    humidity_pct: float | None = None
    battery_board_v: float | None = None
    battery_start_v: float | None = None
    water_level_pct: int | None = None
    gas_ppm: int | None = None
    pitch_deg: float | None = None
    roll_deg: float | None = None
    weather: WeatherData | None = None

    def to_dict(self) -> dict:
        return {
            "vehicle_id": self.vehicle_id,
            "timestamp_ms": self.timestamp_ms,
            "temp_in_c": self.temp_in_c,
            "temp_out_c": self.temp_out_c,
            "humidity_pct": self.humidity_pct,
            "battery_board_v": self.battery_board_v,
            "battery_start_v": self.battery_start_v,
            "water_level_pct": self.water_level_pct,
            "gas_ppm": self.gas_ppm,
            "pitch_deg": self.pitch_deg,
            "roll_deg": self.roll_deg,
            "weather": self.weather.to_dict() if self.weather else None,
        }


@dataclass(frozen=True)
class AlertSet:
    """Active threshold alerts for one sample.

    ``indeterminate`` lists the rules that could not be evaluated because
    their input reading was absent.
    """
    active: frozenset[AlertKind] = field(default_factory=frozenset)
    indeterminate: frozenset[AlertKind] = field(default_factory=frozenset)

    def __contains__(self, kind: object) -> bool:
        return kind in self.active

    def __len__(self) -> int:
        return len(self.active)

    def to_dict(self) -> dict:
        return {
            "active": sorted(k.value for k in self.active),
            "indeterminate": sorted(k.value for k in self.indeterminate),
        }


@dataclass(frozen=True)
class TelemetryUpdate:
    """An accepted sample together with the alerts derived from it."""
    sample: Sample
    alerts: AlertSet

    @property
    def vehicle_id(self) -> str:
        return self.sample.vehicle_id

    def to_dict(self) -> dict:
        return {
            "type": "update",
            "sample": self.sample.to_dict(),
            "alerts": self.alerts.to_dict(),
        }


@dataclass(frozen=True)
class DeliveryOverflow:
    """Loss signal: ``dropped`` updates were discarded for a slow subscriber.

    The consumer should fetch the latest sample instead of relying on the
    stream to be complete.
    """
    vehicle_id: str
    dropped: int

    def to_dict(self) -> dict:
        return {
            "type": "overflow",
            "vehicle_id": self.vehicle_id,
            "dropped": self.dropped,
            "action": "fetch_latest",
        }

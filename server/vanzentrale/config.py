"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: VANZ_<SECTION>_<KEY> (uppercase).
Per-vehicle alert thresholds live under ``vehicle_thresholds`` in YAML only.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from vanzentrale.core.thresholds import Thresholds


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class StoreConfig:
    capacity: int = 500  # samples kept per vehicle


@dataclass
class DispatchConfig:
    queue_capacity: int = 64
    poll_interval_seconds: float = 15.0  # advertised pull cadence, not a guarantee
    keepalive_seconds: float = 15.0


@dataclass
class ThresholdsConfig:
    gas_ppm_max: int = 350
    starter_battery_min_v: float = 11.8
    level_tolerance_deg: float = 1.5

    def to_thresholds(self) -> Thresholds:
        return Thresholds(
            gas_ppm_max=self.gas_ppm_max,
            starter_battery_min_v=self.starter_battery_min_v,
            level_tolerance_deg=self.level_tolerance_deg,
        )


@dataclass
class WeatherConfig:
    backend: str = "none"  # "none" or "http"
    url: str = ""
    refresh_seconds: float = 900.0
    max_age_seconds: float = 3600.0
    timeout_seconds: float = 5.0


@dataclass
class LimitsConfig:
    max_body_bytes: int = 16_384
    active_window_seconds: float = 120.0
    max_clock_skew_seconds: float = 300.0  # client timestamps further ahead are rejected


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    vehicle_thresholds: dict[str, dict] = field(default_factory=dict)


_SECTIONS = ("server", "store", "dispatch", "thresholds", "weather", "limits", "logging")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "VANZ_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "VANZ_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "VANZ_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "VANZ_STORE_CAPACITY": lambda v: setattr(config.store, "capacity", int(v)),
        "VANZ_DISPATCH_QUEUE_CAPACITY": lambda v: setattr(config.dispatch, "queue_capacity", int(v)),
        "VANZ_DISPATCH_POLL_INTERVAL": lambda v: setattr(config.dispatch, "poll_interval_seconds", float(v)),
        "VANZ_DISPATCH_KEEPALIVE": lambda v: setattr(config.dispatch, "keepalive_seconds", float(v)),
        "VANZ_THRESHOLDS_GAS_PPM_MAX": lambda v: setattr(config.thresholds, "gas_ppm_max", int(v)),
        "VANZ_THRESHOLDS_STARTER_BATTERY_MIN_V": lambda v: setattr(config.thresholds, "starter_battery_min_v", float(v)),
        "VANZ_THRESHOLDS_LEVEL_TOLERANCE_DEG": lambda v: setattr(config.thresholds, "level_tolerance_deg", float(v)),
        "VANZ_WEATHER_BACKEND": lambda v: setattr(config.weather, "backend", v),
        "VANZ_WEATHER_URL": lambda v: setattr(config.weather, "url", v),
        "VANZ_WEATHER_REFRESH_SECONDS": lambda v: setattr(config.weather, "refresh_seconds", float(v)),
        "VANZ_WEATHER_MAX_AGE_SECONDS": lambda v: setattr(config.weather, "max_age_seconds", float(v)),
        "VANZ_WEATHER_TIMEOUT_SECONDS": lambda v: setattr(config.weather, "timeout_seconds", float(v)),
        "VANZ_LIMITS_MAX_BODY_BYTES": lambda v: setattr(config.limits, "max_body_bytes", int(v)),
        "VANZ_LIMITS_ACTIVE_WINDOW": lambda v: setattr(config.limits, "active_window_seconds", float(v)),
        "VANZ_LIMITS_MAX_CLOCK_SKEW": lambda v: setattr(config.limits, "max_clock_skew_seconds", float(v)),
        "VANZ_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "VANZ_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path(os.environ.get("VANZ_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for name in _SECTIONS:
            section = getattr(config, name)
            for k, v in (raw.get(name) or {}).items():
                if hasattr(section, k):
                    setattr(section, k, v)

        for vehicle_id, values in (raw.get("vehicle_thresholds") or {}).items():
            config.vehicle_thresholds[str(vehicle_id)] = dict(values or {})

    # Environment overrides always win
    _apply_env_overrides(config)
    return config

"""Tests for configuration loading."""

from __future__ import annotations

from vanzentrale.config import AppConfig, load_config
from vanzentrale.core.thresholds import Thresholds


def test_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config.store.capacity == 500
    assert config.dispatch.poll_interval_seconds == 15.0
    assert config.thresholds.to_thresholds() == Thresholds()
    assert config.weather.backend == "none"
    assert config.vehicle_thresholds == {}


def test_yaml_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "store:\n"
        "  capacity: 50\n"
        "dispatch:\n"
        "  queue_capacity: 8\n"
        "  not_a_setting: 1\n"
        "thresholds:\n"
        "  gas_ppm_max: 300\n"
        "weather:\n"
        "  backend: http\n"
        "  url: http://weather.local/current\n"
        "vehicle_thresholds:\n"
        "  van-1:\n"
        "    level_tolerance_deg: 3.0\n"
    )
    config = load_config(path)
    assert config.store.capacity == 50
    assert config.dispatch.queue_capacity == 8
    assert not hasattr(config.dispatch, "not_a_setting")
    assert config.thresholds.gas_ppm_max == 300
    assert config.weather.backend == "http"
    assert config.vehicle_thresholds == {"van-1": {"level_tolerance_deg": 3.0}}


def test_env_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("store:\n  capacity: 50\nlogging:\n  level: debug\n")
    monkeypatch.setenv("VANZ_STORE_CAPACITY", "75")
    monkeypatch.setenv("VANZ_THRESHOLDS_STARTER_BATTERY_MIN_V", "12.1")
    monkeypatch.setenv("VANZ_LOG_FORMAT", "json")

    config = load_config(path)
    assert config.store.capacity == 75
    assert config.thresholds.starter_battery_min_v == 12.1
    assert config.logging.level == "debug"
    assert config.logging.format == "json"


def test_weather_and_limits_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("VANZ_WEATHER_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("VANZ_LIMITS_MAX_CLOCK_SKEW", "60")

    config = load_config(tmp_path / "missing.yaml")
    assert config.weather.timeout_seconds == 2.5
    assert config.limits.max_clock_skew_seconds == 60.0


def test_config_path_from_env(tmp_path, monkeypatch):
    path = tmp_path / "van.yaml"
    path.write_text("server:\n  port: 9000\n")
    monkeypatch.setenv("VANZ_CONFIG", str(path))
    assert load_config().server.port == 9000


def test_empty_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == AppConfig()

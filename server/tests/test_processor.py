"""Tests for the telemetry processor (ingestion business logic)."""

from __future__ import annotations

import pytest

from vanzentrale.core.errors import ValidationError
from vanzentrale.core.models import AlertKind, WeatherCondition, WeatherData
from vanzentrale.core.processor import TelemetryProcessor
from vanzentrale.core.stats import IngestStats
from vanzentrale.core.thresholds import ThresholdTable
from vanzentrale.dispatch.dispatcher import Dispatcher
from vanzentrale.storage.ring_buffer import RingBufferStore
from vanzentrale.weather.cache import WeatherCache


@pytest.fixture
def parts():
    stats = IngestStats()
    store = RingBufferStore(capacity=10)
    thresholds = ThresholdTable()
    dispatcher = Dispatcher(store, thresholds, stats, queue_capacity=10)
    weather = WeatherCache(max_age_seconds=60)
    processor = TelemetryProcessor(store, dispatcher, thresholds, stats,
                                   weather=weather, clock_ms=lambda: 123_000)
    return processor, store, dispatcher, weather, stats


def test_submit_returns_sample_and_alerts(parts, payload_factory):
    processor, store, _, _, stats = parts
    update = processor.submit(payload_factory(battery_start_v=11.5), size_bytes=200)

    assert update.sample.timestamp_ms == 123_000
    assert update.alerts.active == {AlertKind.STARTER_BATTERY_LOW}
    assert store.latest("van-1") == update.sample
    snap = stats.snapshot()
    assert snap["samples_accepted"] == 1
    assert snap["bytes_received"] == 200


def test_submit_notifies_subscribers(parts, payload_factory):
    processor, _, dispatcher, _, _ = parts
    sub = dispatcher.subscribe("van-1")
    update = processor.submit(payload_factory(gas_ppm=351))
    assert sub.drain() == [update]


def test_rejection_is_atomic(parts, payload_factory):
    processor, store, dispatcher, _, stats = parts
    processor.submit(payload_factory(timestamp_ms=1))
    sub = dispatcher.subscribe("van-1")

    with pytest.raises(ValidationError):
        processor.submit(payload_factory(temp_in_c=200, timestamp_ms=2))

    assert store.size("van-1") == 1
    assert store.latest("van-1").timestamp_ms == 1
    assert sub.drain() == []
    assert stats.snapshot()["samples_rejected"] == 1


def test_future_timestamp_does_not_block_vehicle(parts, payload_factory):
    processor, store, _, _, stats = parts

    with pytest.raises(ValidationError) as exc_info:
        processor.submit(payload_factory(timestamp_ms=10**18))
    assert "timestamp_ms" in exc_info.value.fields
    assert stats.snapshot()["samples_rejected"] == 1

    assert processor.submit(payload_factory(timestamp_ms=122_000)).sample.timestamp_ms == 122_000
    assert processor.submit(payload_factory()).sample.timestamp_ms == 123_000
    assert store.size("van-1") == 2


def test_rejection_for_non_object(parts):
    processor, _, _, _, stats = parts
    with pytest.raises(ValidationError):
        processor.submit("garbage")
    snap = stats.snapshot()
    assert snap["samples_rejected"] == 1
    assert snap["active_vehicles"]["total"] == 0


def test_weather_enrichment_from_cache(parts, payload_factory):
    processor, _, _, weather, _ = parts
    assert processor.submit(payload_factory()).sample.weather is None

    report = WeatherData(WeatherCondition.SUNNY, 14.0, "Bright")
    weather.update(report)
    assert processor.submit(payload_factory()).sample.weather == report


def test_payload_weather_wins_over_cache(parts, payload_factory):
    processor, _, _, weather, _ = parts
    weather.update(WeatherData(WeatherCondition.SUNNY, 14.0, "Bright"))
    sample = processor.submit(payload_factory(weather={"condition": "Rain"})).sample
    assert sample.weather.condition is WeatherCondition.RAIN
    assert sample.weather.external_temp_c is None


def test_processor_without_weather(payload_factory):
    stats = IngestStats()
    store = RingBufferStore()
    thresholds = ThresholdTable()
    processor = TelemetryProcessor(store, Dispatcher(store, thresholds, stats),
                                   thresholds, stats)
    assert processor.submit(payload_factory()).sample.weather is None

"""Telemetry processor: validates, enriches, stores and dispatches samples.

This is the core business logic. It depends on the SampleStore protocol and
the Dispatcher, not on HTTP.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Any, Callable, TYPE_CHECKING

import structlog

from vanzentrale.core.errors import ValidationError
from vanzentrale.core.models import TelemetryUpdate
from vanzentrale.core.thresholds import evaluate
from vanzentrale.core.validation import parse_sample

if TYPE_CHECKING:
    from vanzentrale.core.models import Sample
    from vanzentrale.core.stats import IngestStats
    from vanzentrale.core.thresholds import ThresholdTable
    from vanzentrale.dispatch.dispatcher import Dispatcher
    from vanzentrale.storage.base import SampleStore
    from vanzentrale.weather.cache import WeatherCache

log = structlog.get_logger()


def _now_ms() -> int:
    return int(time.time() * 1000)


class TelemetryProcessor:
    """Accepts one sample per call, atomically: stored and dispatched, or rejected."""

    def __init__(
        self,
        store: SampleStore,
        dispatcher: Dispatcher,
        thresholds: ThresholdTable,
        stats: IngestStats,
        weather: WeatherCache | None = None,
        clock_ms: Callable[[], int] = _now_ms,
        max_clock_skew_ms: int = 300_000,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._thresholds = thresholds
        self._stats = stats
        self._weather = weather
        self._clock_ms = clock_ms
        self._max_clock_skew_ms = max_clock_skew_ms

    def submit(self, payload: Any, size_bytes: int = 0) -> TelemetryUpdate:
        """Validate and accept one sample. Raises ValidationError on rejection."""
        vehicle_id = payload.get("vehicle_id") if isinstance(payload, dict) else None
        if not isinstance(vehicle_id, str):
            vehicle_id = None

        now_ms = self._clock_ms()
        try:
            sample = self._enrich(parse_sample(payload, now_ms, self._max_clock_skew_ms))
            alerts = evaluate(sample, self._thresholds.for_vehicle(sample.vehicle_id))

            def notify(stored: Sample) -> None:
                self._dispatcher.publish(TelemetryUpdate(stored, alerts))

            stored = self._store.append(
                sample.vehicle_id,
                sample,
                received_ms=now_ms,
                on_commit=notify,
            )
        except ValidationError as exc:
            self._stats.record_rejected(vehicle_id, size_bytes)
            log.warning("sample_rejected", vehicle=vehicle_id, fields=exc.fields)
            raise

        self._stats.record_accepted(stored.vehicle_id, size_bytes)
        if alerts.active:
            log.info("alerts_active", vehicle=stored.vehicle_id,
                     alerts=sorted(a.value for a in alerts.active))
        log.debug("sample_accepted", vehicle=stored.vehicle_id,
                  timestamp_ms=stored.timestamp_ms)
        return TelemetryUpdate(stored, alerts)

    def _enrich(self, sample: Sample) -> Sample:
        if sample.weather is not None or self._weather is None:
            return sample
        report = self._weather.current()
        if report is None:
            return sample
        return replace(sample, weather=report)

"""Latest weather report with an expiry, plus its background refresher.

Weather is best-effort enrichment: a stale or missing report is reported as
absent, and fetch failures never reach the ingestion path.
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import TYPE_CHECKING

import httpx
import structlog

if TYPE_CHECKING:
    from vanzentrale.core.models import WeatherData
    from vanzentrale.core.stats import IngestStats
    from vanzentrale.weather.base import WeatherProvider

log = structlog.get_logger()


class WeatherCache:
    """Holds the most recent weather report for ``max_age_seconds``."""

    def __init__(self, max_age_seconds: float = 3600.0) -> None:
        self._lock = threading.Lock()
        self._max_age = max_age_seconds
        self._report: WeatherData | None = None
        self._fetched_at: float = 0.0

    def update(self, report: WeatherData, now: float | None = None) -> None:
        with self._lock:
            self._report = report
            self._fetched_at = time.monotonic() if now is None else now

    def current(self, now: float | None = None) -> WeatherData | None:
        """Return the cached report, or None if there is none or it expired."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._report is None or now - self._fetched_at > self._max_age:
                return None
            return self._report

    def age_seconds(self, now: float | None = None) -> float | None:
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._report is None:
                return None
            return round(now - self._fetched_at, 1)


async def refresh_once(provider: WeatherProvider, cache: WeatherCache,
                       stats: IngestStats) -> bool:
    """Fetch one report into the cache. Returns False on failure."""
    try:
        report = await provider.fetch()
    except (httpx.HTTPError, ValueError):
        log.warning("weather_refresh_failed", exc_info=True)
        stats.record_weather_refresh(False)
        return False
    cache.update(report)
    stats.record_weather_refresh(True)
    log.debug("weather_refreshed",
              condition=report.condition.value if report.condition else None)
    return True


async def run_weather_refresher(provider: WeatherProvider, cache: WeatherCache,
                                stats: IngestStats, interval_seconds: float) -> None:
    """Refresh the cache forever. Runs as a background task."""
    log.info("weather_refresher_started", interval_seconds=interval_seconds)
    try:
        while True:
            await refresh_once(provider, cache, stats)
            await asyncio.sleep(interval_seconds)
    finally:
        await provider.aclose()

"""Vanzentrale server: main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, dispatch, weather and API layers.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from vanzentrale.api.monitoring import router as monitoring_router
from vanzentrale.api.samples import router as samples_router
from vanzentrale.api.stream import router as stream_router
from vanzentrale.config import AppConfig, load_config
from vanzentrale.core.processor import TelemetryProcessor
from vanzentrale.core.stats import IngestStats
from vanzentrale.core.thresholds import ThresholdTable
from vanzentrale.dispatch.dispatcher import Dispatcher
from vanzentrale.storage.ring_buffer import RingBufferStore
from vanzentrale.weather.cache import WeatherCache, run_weather_refresher
from vanzentrale.weather.http_provider import HttpWeatherProvider

log = structlog.get_logger()

# Module-level singletons (set during startup)
_processor: TelemetryProcessor | None = None
_dispatcher: Dispatcher | None = None
_store: RingBufferStore | None = None
_stats: IngestStats | None = None
_weather: WeatherCache | None = None
_thresholds: ThresholdTable | None = None
_config: AppConfig | None = None


def get_processor() -> TelemetryProcessor:
    assert _processor is not None, "Server not initialized"
    return _processor


def get_dispatcher() -> Dispatcher:
    assert _dispatcher is not None, "Server not initialized"
    return _dispatcher


def get_store() -> RingBufferStore:
    assert _store is not None, "Server not initialized"
    return _store


def get_stats() -> IngestStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_weather() -> WeatherCache:
    assert _weather is not None, "Server not initialized"
    return _weather


def get_thresholds() -> ThresholdTable:
    assert _thresholds is not None, "Server not initialized"
    return _thresholds


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def build_components(config: AppConfig) -> None:
    """Create the component graph from config and install the singletons."""
    global _processor, _dispatcher, _store, _stats, _weather, _thresholds, _config

    _thresholds = thresholds = ThresholdTable(
        default=config.thresholds.to_thresholds(),
        overrides=config.vehicle_thresholds,
    )
    _config = config
    _stats = IngestStats(active_window_seconds=config.limits.active_window_seconds)
    _store = RingBufferStore(capacity=config.store.capacity)
    _weather = WeatherCache(max_age_seconds=config.weather.max_age_seconds)
    _dispatcher = Dispatcher(
        store=_store,
        thresholds=thresholds,
        stats=_stats,
        queue_capacity=config.dispatch.queue_capacity,
    )
    _processor = TelemetryProcessor(
        store=_store,
        dispatcher=_dispatcher,
        thresholds=thresholds,
        stats=_stats,
        weather=_weather,
        max_clock_skew_ms=int(config.limits.max_clock_skew_seconds * 1000),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    config = load_config()
    _setup_logging(config)

    log.info("server_starting",
             env=config.server.env,
             store_capacity=config.store.capacity,
             queue_capacity=config.dispatch.queue_capacity,
             weather_backend=config.weather.backend)

    build_components(config)

    # Start background weather refresher
    weather_task = None
    if config.weather.backend == "http" and config.weather.url:
        provider = HttpWeatherProvider(config.weather.url,
                                       timeout_seconds=config.weather.timeout_seconds)
        weather_task = asyncio.create_task(run_weather_refresher(
            provider, get_weather(), get_stats(), config.weather.refresh_seconds,
        ))

    log.info("server_started",
             host=config.server.host,
             port=config.server.port)

    yield

    # Shutdown
    get_dispatcher().close_all()
    if weather_task is not None:
        weather_task.cancel()
        try:
            await weather_task
        except asyncio.CancelledError:
            pass
    log.info("server_stopped")


app = FastAPI(
    title="Vanzentrale",
    description="Camper van telemetry ingestion and alerting server",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(samples_router)
app.include_router(stream_router)
app.include_router(monitoring_router)

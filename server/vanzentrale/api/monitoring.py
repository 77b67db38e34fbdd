"""Health check, monitoring and client configuration endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from vanzentrale.core.validation import FLOAT_RANGES, INT_RANGES

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from vanzentrale.main import get_stats, get_store, get_weather

    snapshot = get_stats().snapshot()
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "vehicles": len(get_store().vehicle_ids()),
        "subscribers": snapshot["subscribers"],
        "weather_age_seconds": get_weather().age_seconds(),
    }


@router.get("/stats")
async def stats() -> dict:
    """Detailed ingestion and delivery statistics.

    The ``active_vehicles`` section counts vehicles that submitted a sample
    within the last ``window_seconds``.
    """
    from vanzentrale.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Configuration endpoint for dashboards and sensor nodes.

    ``poll_interval_seconds`` is the suggested pull cadence; it is a client
    policy, not a freshness guarantee.
    """
    from vanzentrale.main import get_config, get_thresholds

    config = get_config()
    thresholds = get_thresholds()
    return {
        "poll_interval_seconds": config.dispatch.poll_interval_seconds,
        "keepalive_seconds": config.dispatch.keepalive_seconds,
        "history_capacity": config.store.capacity,
        "max_body_bytes": config.limits.max_body_bytes,
        "thresholds": thresholds.default.to_dict(),
        "vehicle_thresholds": {
            vid: t.to_dict() for vid, t in thresholds.overrides().items()
        },
        "ranges": {
            **{k: list(v) for k, v in FLOAT_RANGES.items()},
            **{k: list(v) for k, v in INT_RANGES.items()},
        },
    }


@router.get("/weather")
async def get_current_weather() -> JSONResponse:
    """Current cached weather report, or 404 when none is fresh."""
    from vanzentrale.main import get_weather

    report = get_weather().current()
    if report is None:
        return JSONResponse(content={"error": "no_weather"}, status_code=404)
    return JSONResponse(content=report.to_dict())

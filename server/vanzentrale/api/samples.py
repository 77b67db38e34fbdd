"""Sample ingestion and query API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, calls the
processor or the store, and maps domain errors to status codes.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from vanzentrale.core.errors import NotFoundError, ValidationError

router = APIRouter(prefix="/api/v1")


def _not_found(vehicle_id: str) -> JSONResponse:
    return JSONResponse(
        content={"error": "not_found", "vehicle_id": vehicle_id},
        status_code=404,
    )


@router.post("/samples")
async def submit_sample(request: Request) -> JSONResponse:
    """Receive one telemetry sample from a sensor node.

    Responds 200 with the stored sample and its alerts, 422 naming the
    offending fields, 400 for unparseable bodies, 413 for oversized ones.
    """
    from vanzentrale.main import get_config, get_processor

    body_bytes = await request.body()
    if len(body_bytes) > get_config().limits.max_body_bytes:
        return JSONResponse(
            content={"accepted": False, "error": "payload too large"},
            status_code=413,
        )

    try:
        body = json.loads(body_bytes)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
        return JSONResponse(
            content={"accepted": False, "error": "invalid JSON"},
            status_code=400,
        )
    if not isinstance(body, dict):
        return JSONResponse(
            content={"accepted": False, "error": "body must be a JSON object"},
            status_code=400,
        )

    try:
        update = get_processor().submit(body, len(body_bytes))
    except ValidationError as exc:
        return JSONResponse(
            content={"accepted": False, "error": str(exc), "fields": exc.fields},
            status_code=422,
        )

    return JSONResponse(content={
        "accepted": True,
        "sample": update.sample.to_dict(),
        "alerts": update.alerts.to_dict(),
    })


@router.get("/vehicles/{vehicle_id}/latest")
async def get_latest(vehicle_id: str) -> JSONResponse:
    """Latest sample and alerts for a vehicle, or 404 if it never reported."""
    from vanzentrale.main import get_dispatcher

    try:
        update = get_dispatcher().pull(vehicle_id)
    except NotFoundError:
        return _not_found(vehicle_id)
    return JSONResponse(content=update.to_dict())


@router.get("/vehicles/{vehicle_id}/history")
async def get_history(
    vehicle_id: str,
    limit: int = Query(default=100, ge=1, le=1000),
) -> JSONResponse:
    """Most recent samples for a vehicle, oldest first."""
    from vanzentrale.main import get_store

    try:
        samples = get_store().history(vehicle_id, limit)
    except NotFoundError:
        return _not_found(vehicle_id)
    return JSONResponse(content={
        "vehicle_id": vehicle_id,
        "samples": [s.to_dict() for s in samples],
        "total": len(samples),
    })


@router.get("/vehicles/{vehicle_id}/window")
async def get_window(
    vehicle_id: str,
    seconds: float = Query(default=300.0, ge=0, le=86_400),
) -> JSONResponse:
    """Samples within ``seconds`` of the vehicle's latest sample."""
    from vanzentrale.main import get_store

    try:
        samples = get_store().window(vehicle_id, int(seconds * 1000))
    except NotFoundError:
        return _not_found(vehicle_id)
    return JSONResponse(content={
        "vehicle_id": vehicle_id,
        "seconds": seconds,
        "samples": [s.to_dict() for s in samples],
        "total": len(samples),
    })


@router.delete("/vehicles/{vehicle_id}")
async def delete_vehicle(vehicle_id: str) -> JSONResponse:
    """Deregister a vehicle and discard its history."""
    from vanzentrale.main import get_store

    if not get_store().drop(vehicle_id):
        return _not_found(vehicle_id)
    return JSONResponse(content={"deleted": vehicle_id})

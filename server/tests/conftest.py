"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import vanzentrale.main as main_module
from vanzentrale.config import AppConfig


def make_payload(vehicle_id: str = "van-1", **overrides) -> dict:
    """A complete, valid sample payload within every plausible range."""
    payload = {
        "vehicle_id": vehicle_id,
        "temp_in_c": 21.5,
        "temp_out_c": 8.0,
        "humidity_pct": 45.0,
        "battery_board_v": 12.9,
        "battery_start_v": 12.4,
        "water_level_pct": 60,
        "gas_ppm": 120,
        "pitch_deg": 0.3,
        "roll_deg": -0.4,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def payload_factory():
    return make_payload


@pytest.fixture(autouse=True)
def _init_server():
    """Initialize server singletons for every test."""
    config = AppConfig()
    config.logging.level = "warning"
    config.store.capacity = 20
    config.dispatch.queue_capacity = 5
    config.vehicle_thresholds = {"van-sensitive": {"gas_ppm_max": 100}}

    main_module.build_components(config)

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._store = None
    main_module._weather = None
    main_module._thresholds = None
    main_module._dispatcher = None
    main_module._processor = None


@pytest.fixture
async def client():
    from vanzentrale.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

#!/usr/bin/env python3
"""Vanzentrale sensor node simulator.

Pushes realistic camper van telemetry to the server, the way the ESP32
sensor node in the van would.

Usage:
    # One van reporting every 15 seconds for 10 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --duration 600

    # Stress test: 20 vans, one sample per second each
    python -m tools.simulator.simulate --vans 20 --interval 1

    # Inject an out-of-range reading every 10th sample
    python -m tools.simulator.simulate --fault-every 10
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import time
from dataclasses import dataclass

import httpx

# (low, high, max step per tick) for each random-walking reading.
ENVELOPES: dict[str, tuple[float, float, float]] = {
    "temp_in_c": (19.0, 24.0, 0.3),
    "temp_out_c": (4.0, 12.0, 0.4),
    "humidity_pct": (35.0, 55.0, 1.5),
    "battery_board_v": (12.6, 13.2, 0.05),
    "battery_start_v": (12.2, 12.6, 0.03),
    "pitch_deg": (-2.0, 2.0, 0.2),
    "roll_deg": (-3.0, 3.0, 0.3),
}

FORECASTS = {
    "Sunny": "Bright and dry for the rest of the day",
    "Cloudy": "Clouds thickening towards the evening",
    "Rain": "Light rain expected in 3h",
}


@dataclass
class SimVan:
    vehicle_id: str
    readings: dict[str, float]
    water_level_pct: int
    gas_ppm: int
    samples_sent: int = 0
    rejected: int = 0
    errors: int = 0

    @classmethod
    def create(cls, vehicle_id: str) -> SimVan:
        return cls(
            vehicle_id=vehicle_id,
            readings={k: random.uniform(lo, hi) for k, (lo, hi, _) in ENVELOPES.items()},
            water_level_pct=random.randint(35, 75),
            gas_ppm=random.randint(0, 200),
        )


def step_van(van: SimVan) -> None:
    """Random-walk every reading within its envelope."""
    for key, (lo, hi, step) in ENVELOPES.items():
        value = van.readings[key] + random.uniform(-step, step)
        van.readings[key] = max(lo, min(hi, value))
    # Water only goes down, until someone refills the tank.
    if random.random() < 0.3:
        van.water_level_pct = max(0, van.water_level_pct - 1)
    if van.water_level_pct == 0 or random.random() < 0.01:
        van.water_level_pct = 100
    # Gas mostly idles low, with the occasional leak spike above the alarm level.
    if random.random() < 0.05:
        van.gas_ppm = random.randint(351, 450)
    else:
        van.gas_ppm = max(0, min(450, van.gas_ppm + random.randint(-30, 30)))


def make_weather() -> dict:
    condition = random.choices(["Sunny", "Cloudy", "Rain"], weights=[40, 30, 30])[0]
    return {
        "condition": condition,
        "external_temp_c": round(random.uniform(5, 15), 1),
        "forecast_text": FORECASTS[condition],
    }


def make_sample_payload(van: SimVan, with_weather: bool, fault: bool) -> dict:
    """Create a single sample JSON payload."""
    payload = {
        "vehicle_id": van.vehicle_id,
        "timestamp_ms": int(time.time() * 1000),
        **{k: round(v, 1) for k, v in van.readings.items()},
        "water_level_pct": van.water_level_pct,
        "gas_ppm": van.gas_ppm,
    }
    if with_weather:
        payload["weather"] = make_weather()
    if fault:
        # A broken thermistor reads far outside the plausible range.
        payload["temp_in_c"] = 200.0
    return payload


async def run_van(
    client: httpx.AsyncClient,
    van: SimVan,
    server_url: str,
    interval: float,
    duration_seconds: float,
    with_weather: bool,
    fault_every: int,
) -> None:
    """Simulate a single van's sensor node."""
    end_time = time.monotonic() + duration_seconds
    tick = 0

    while time.monotonic() < end_time:
        tick += 1
        step_van(van)
        fault = fault_every > 0 and tick % fault_every == 0
        payload = make_sample_payload(van, with_weather, fault)

        try:
            resp = await client.post(
                f"{server_url}/api/v1/samples",
                content=json.dumps(payload),
                headers={"content-type": "application/json"},
            )
            if resp.status_code == 200:
                van.samples_sent += 1
                active = resp.json()["alerts"]["active"]
                if active:
                    print(f"  {van.vehicle_id}: alerts {', '.join(active)}")
            elif resp.status_code == 422:
                van.rejected += 1
            else:
                van.errors += 1
        except httpx.RequestError:
            van.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    vans = [SimVan.create(f"{args.prefix}-{i + 1}") for i in range(args.vans)]

    print(f"Starting simulation: {args.vans} vans, one sample every {args.interval}s each")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print(f"  Weather in payload: {not args.no_weather}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [
            run_van(client, van, args.server, args.interval, args.duration,
                    not args.no_weather, args.fault_every)
            for van in vans
        ]
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        total_sent = sum(v.samples_sent for v in vans)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Samples accepted: {total_sent}")
        print(f"  Samples rejected: {sum(v.rejected for v in vans)}")
        print(f"  Errors: {sum(v.errors for v in vans)}")
        print(f"  Throughput: {total_sent / elapsed:.1f} samples/sec")

        # Check server stats
        try:
            resp = await client.get(f"{args.server}/api/v1/stats")
        except httpx.RequestError:
            return
        if resp.status_code == 200:
            stats = resp.json()
            print("\nServer stats:")
            print(f"  Samples accepted: {stats['samples_accepted']}")
            print(f"  Samples rejected: {stats['samples_rejected']}")
            print(f"  Active vehicles: {stats['active_vehicles']['total']}")
            print(f"  Subscribers: {stats['subscribers']}")


def main():
    parser = argparse.ArgumentParser(description="Vanzentrale sensor node simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--vans", type=int, default=1, help="Number of simulated vans")
    parser.add_argument("--prefix", default="van", help="Vehicle id prefix")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--interval", type=float, default=15.0,
                        help="Seconds between samples per van (default: 15)")
    parser.add_argument("--no-weather", action="store_true",
                        help="Leave weather out so the server's weather cache is used")
    parser.add_argument("--fault-every", type=int, default=0,
                        help="Send an out-of-range reading every N samples (0: never)")

    args = parser.parse_args()
    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()

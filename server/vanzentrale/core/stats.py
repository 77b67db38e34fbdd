"""Ingestion statistics and active-vehicle tracking.

Tracks in-memory counters and a sliding window of vehicles that reported
recently. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class VehicleActivity:
    """Tracks a single vehicle's recent activity."""
    last_seen: float          # time.monotonic() timestamp
    samples_sent: int = 0
    rejected: int = 0


class IngestStats:
    """Thread-safe ingestion and delivery statistics.

    A vehicle is considered active if its last submission (accepted or not)
    was within ``active_window_seconds`` (default 120s).
    """

    def __init__(self, active_window_seconds: float = 120.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.samples_received: int = 0
        self.samples_accepted: int = 0
        self.samples_rejected: int = 0
        self.bytes_received: int = 0
        self.notifications_queued: int = 0
        self.notifications_dropped: int = 0
        self.subscribers: int = 0
        self.subscribers_max: int = 0
        self.weather_refreshes: int = 0
        self.weather_errors: int = 0

        # Vehicle tracking: vehicle_id → VehicleActivity
        self._vehicles: dict[str, VehicleActivity] = {}

    def _touch(self, vehicle_id: str, now: float) -> VehicleActivity:
        """Caller holds lock."""
        act = self._vehicles.get(vehicle_id)
        if act is None:
            act = self._vehicles[vehicle_id] = VehicleActivity(last_seen=now)
        else:
            act.last_seen = now
        return act

    def record_accepted(self, vehicle_id: str, size_bytes: int = 0) -> None:
        """Record that a sample from a vehicle was accepted."""
        now = time.monotonic()
        with self._lock:
            self.samples_received += 1
            self.samples_accepted += 1
            self.bytes_received += size_bytes
            self._touch(vehicle_id, now).samples_sent += 1

    def record_rejected(self, vehicle_id: str | None = None, size_bytes: int = 0) -> None:
        """Record a rejected sample. ``vehicle_id`` is None when it was unusable."""
        now = time.monotonic()
        with self._lock:
            self.samples_received += 1
            self.samples_rejected += 1
            self.bytes_received += size_bytes
            if vehicle_id:
                self._touch(vehicle_id, now).rejected += 1

    def record_delivery(self, queued: int, dropped: int) -> None:
        with self._lock:
            self.notifications_queued += queued
            self.notifications_dropped += dropped

    def update_subscribers(self, count: int) -> None:
        with self._lock:
            self.subscribers = count
            if count > self.subscribers_max:
                self.subscribers_max = count

    def record_weather_refresh(self, ok: bool) -> None:
        with self._lock:
            if ok:
                self.weather_refreshes += 1
            else:
                self.weather_errors += 1

    def _prune_stale_vehicles(self, now: float) -> None:
        """Remove vehicles not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [vid for vid, act in self._vehicles.items() if act.last_seen < cutoff]
        for vid in stale:
            del self._vehicles[vid]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_vehicles(now_mono)

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "samples_received": self.samples_received,
                "samples_accepted": self.samples_accepted,
                "samples_rejected": self.samples_rejected,
                "bytes_received": self.bytes_received,
                "notifications_queued": self.notifications_queued,
                "notifications_dropped": self.notifications_dropped,
                "subscribers": self.subscribers,
                "subscribers_max_ever": self.subscribers_max,
                "weather_refreshes": self.weather_refreshes,
                "weather_errors": self.weather_errors,
                "active_vehicles": {
                    "total": len(self._vehicles),
                    "window_seconds": self._active_window,
                },
            }

"""Dispatcher: delivers the latest sample and its alerts to consumers.

Two delivery modes:
- pull: the consumer asks for the latest update on its own cadence.
- push: the consumer subscribes and receives every accepted update for a
  vehicle through its own bounded Subscription queue.

Publishing never blocks the ingestion path. A slow subscriber only loses
its own updates.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from vanzentrale.core.models import TelemetryUpdate
from vanzentrale.core.thresholds import evaluate
from vanzentrale.dispatch.subscription import Subscription

if TYPE_CHECKING:
    from vanzentrale.core.stats import IngestStats
    from vanzentrale.core.thresholds import ThresholdTable
    from vanzentrale.storage.base import SampleStore

log = structlog.get_logger()


class Dispatcher:
    """Fan-out of telemetry updates to per-vehicle subscribers."""

    def __init__(
        self,
        store: SampleStore,
        thresholds: ThresholdTable,
        stats: IngestStats,
        queue_capacity: int = 64,
    ) -> None:
        self._store = store
        self._thresholds = thresholds
        self._stats = stats
        self._queue_capacity = queue_capacity
        self._lock = threading.Lock()
        self._subscribers: dict[str, set[Subscription]] = {}

    def pull(self, vehicle_id: str) -> TelemetryUpdate:
        """Latest sample with freshly computed alerts. Raises NotFoundError."""
        sample = self._store.latest(vehicle_id)
        return TelemetryUpdate(sample, evaluate(sample, self._thresholds.for_vehicle(vehicle_id)))

    def subscribe(self, vehicle_id: str, capacity: int | None = None) -> Subscription:
        sub = Subscription(
            vehicle_id, self._queue_capacity if capacity is None else capacity)
        with self._lock:
            self._subscribers.setdefault(vehicle_id, set()).add(sub)
            total = sum(len(s) for s in self._subscribers.values())
        self._stats.update_subscribers(total)
        log.info("subscriber_added", vehicle=vehicle_id, subscription=sub.id,
                 capacity=sub.capacity)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove a subscriber and discard its queue. Safe to call twice."""
        with self._lock:
            subs = self._subscribers.get(sub.vehicle_id)
            if subs is not None:
                subs.discard(sub)
                if not subs:
                    del self._subscribers[sub.vehicle_id]
            total = sum(len(s) for s in self._subscribers.values())
        sub.close()
        self._stats.update_subscribers(total)
        log.info("subscriber_removed", vehicle=sub.vehicle_id, subscription=sub.id,
                 offered=sub.offered, dropped=sub.dropped)

    def publish(self, update: TelemetryUpdate) -> int:
        """Offer an update to every subscriber of its vehicle.

        Returns the number of subscribers it was queued for.
        """
        with self._lock:
            targets = list(self._subscribers.get(update.vehicle_id, ()))

        dropped = 0
        for sub in targets:
            if not sub.offer(update):
                dropped += 1
                log.debug("subscriber_overflow", vehicle=update.vehicle_id,
                          subscription=sub.id, capacity=sub.capacity)
        self._stats.record_delivery(len(targets), dropped)
        return len(targets)

    def subscriber_count(self, vehicle_id: str | None = None) -> int:
        with self._lock:
            if vehicle_id is not None:
                return len(self._subscribers.get(vehicle_id, ()))
            return sum(len(s) for s in self._subscribers.values())

    def close_all(self) -> None:
        with self._lock:
            subs = [s for group in self._subscribers.values() for s in group]
            self._subscribers.clear()
        for sub in subs:
            sub.close()
        self._stats.update_subscribers(0)
        if subs:
            log.info("subscribers_closed", count=len(subs))

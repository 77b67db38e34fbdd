"""Per-subscriber bounded outbound queue.

The producer side (``offer``) never blocks: when the queue is full the
oldest queued update is discarded and counted. The consumer receives a
single DeliveryOverflow for all updates dropped since the last one it saw,
ahead of the updates that are still queued.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from collections import deque
from typing import Union

import structlog

from vanzentrale.core.errors import SubscriptionClosed
from vanzentrale.core.models import DeliveryOverflow, TelemetryUpdate

log = structlog.get_logger()

Event = Union[TelemetryUpdate, DeliveryOverflow]

_ids = itertools.count(1)


class Subscription:
    """A cancellable stream of updates for one vehicle."""

    def __init__(self, vehicle_id: str, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.id = next(_ids)
        self.vehicle_id = vehicle_id
        self.capacity = capacity
        self._lock = threading.Lock()
        self._pending: deque[TelemetryUpdate] = deque()
        self._dropped_unsignalled = 0
        self._closed = False

        # Set when something is ready; bound to the consumer's loop on first get().
        self._ready = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

        self.offered = 0
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, update: TelemetryUpdate) -> bool:
        """Queue an update without blocking. Returns False if one was dropped."""
        with self._lock:
            if self._closed:
                return True
            overflow = len(self._pending) >= self.capacity
            if overflow:
                self._pending.popleft()
                self._dropped_unsignalled += 1
                self.dropped += 1
            self._pending.append(update)
            self.offered += 1
        self._wake()
        return not overflow

    def poll(self) -> Event | None:
        """Return the next event, or None if nothing is queued."""
        with self._lock:
            if self._dropped_unsignalled:
                signal = DeliveryOverflow(self.vehicle_id, self._dropped_unsignalled)
                self._dropped_unsignalled = 0
                return signal
            if self._pending:
                return self._pending.popleft()
            return None

    def drain(self) -> list[Event]:
        events = []
        while (event := self.poll()) is not None:
            events.append(event)
        return events

    def qsize(self) -> int:
        with self._lock:
            return len(self._pending)

    async def get(self, timeout: float | None = None) -> Event:
        """Wait for the next event.

        Raises SubscriptionClosed once cancelled and empty, TimeoutError if
        nothing arrives within ``timeout`` seconds.
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        while True:
            self._ready.clear()
            event = self.poll()
            if event is not None:
                return event
            if self._closed:
                raise SubscriptionClosed(f"subscription {self.id} closed")
            try:
                await asyncio.wait_for(self._ready.wait(), timeout)
            except asyncio.TimeoutError:
                raise TimeoutError(f"no event within {timeout}s") from None

    def close(self) -> None:
        """Cancel the subscription and discard anything still queued."""
        with self._lock:
            self._closed = True
            self._pending.clear()
            self._dropped_unsignalled = 0
        self._wake()

    def _wake(self) -> None:
        loop = self._loop
        if loop is None:
            # No consumer is waiting yet; get() polls before it sleeps.
            return
        try:
            loop.call_soon_threadsafe(self._ready.set)
        except RuntimeError:
            log.debug("subscriber_loop_closed", subscription=self.id,
                      vehicle=self.vehicle_id)

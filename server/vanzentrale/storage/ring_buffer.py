"""In-memory ring buffer implementation of SampleStore.

Each vehicle gets its own bounded deque guarded by its own lock, so writes
for one vehicle never wait on another. The registry lock is only taken to
create or remove a vehicle's buffer.

Nothing here is persisted; history is lost on restart.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import replace
from typing import Callable, TYPE_CHECKING

import structlog

from vanzentrale.core.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from vanzentrale.core.models import Sample

log = structlog.get_logger()


class _VehicleBuffer:
    """History of one vehicle. All access goes through ``lock``."""

    __slots__ = ("lock", "samples", "evicted")

    def __init__(self, capacity: int) -> None:
        self.lock = threading.Lock()
        self.samples: deque[Sample] = deque(maxlen=capacity)
        self.evicted = 0


class RingBufferStore:
    """SampleStore backed by one bounded deque per vehicle."""

    def __init__(self, capacity: int = 500) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._registry_lock = threading.Lock()
        self._buffers: dict[str, _VehicleBuffer] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def _buffer(self, vehicle_id: str) -> _VehicleBuffer:
        buf = self._buffers.get(vehicle_id)
        if buf is None:
            raise NotFoundError(vehicle_id)
        return buf

    def _buffer_for_write(self, vehicle_id: str) -> _VehicleBuffer:
        buf = self._buffers.get(vehicle_id)
        if buf is not None:
            return buf
        with self._registry_lock:
            buf = self._buffers.get(vehicle_id)
            if buf is None:
                buf = _VehicleBuffer(self._capacity)
                self._buffers[vehicle_id] = buf
                log.info("vehicle_registered", vehicle=vehicle_id)
            return buf

    def append(
        self,
        vehicle_id: str,
        sample: Sample,
        *,
        received_ms: int,
        on_commit: Callable[[Sample], None] | None = None,
    ) -> Sample:
        """Append a sample at the tail, evicting the oldest past capacity.

        A missing timestamp is set to ``received_ms``, or to the latest
        stored timestamp if the clock went backwards. A supplied timestamp
        older than the latest stored one is rejected.

        ``on_commit`` runs with the vehicle lock held, so callbacks for one
        vehicle observe samples in append order. It must not block.
        """
        buf = self._buffer_for_write(vehicle_id)
        with buf.lock:
            last = buf.samples[-1] if buf.samples else None
            if sample.timestamp_ms is None:
                stamp = received_ms if last is None else max(received_ms, last.timestamp_ms)
                sample = replace(sample, timestamp_ms=stamp)
            elif last is not None and sample.timestamp_ms < last.timestamp_ms:
                raise ValidationError({
                    "timestamp_ms": f"older than latest sample ({last.timestamp_ms})",
                })

            if len(buf.samples) == self._capacity:
                buf.evicted += 1
            buf.samples.append(sample)
            if on_commit is not None:
                on_commit(sample)
        return sample

    def latest(self, vehicle_id: str) -> Sample:
        buf = self._buffer(vehicle_id)
        with buf.lock:
            if not buf.samples:
                raise NotFoundError(vehicle_id)
            return buf.samples[-1]

    def history(self, vehicle_id: str, limit: int) -> list[Sample]:
        """Return the most recent ``limit`` samples, oldest first."""
        if limit < 1:
            raise ValueError("limit must be >= 1")
        buf = self._buffer(vehicle_id)
        with buf.lock:
            if not buf.samples:
                raise NotFoundError(vehicle_id)
            items = list(buf.samples)
        return items[-limit:]

    def window(self, vehicle_id: str, duration_ms: int) -> list[Sample]:
        """Return samples no older than ``duration_ms`` before the latest."""
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        buf = self._buffer(vehicle_id)
        with buf.lock:
            if not buf.samples:
                raise NotFoundError(vehicle_id)
            items = list(buf.samples)
        cutoff = items[-1].timestamp_ms - duration_ms
        # Timestamps are non-decreasing, so scan back from the tail.
        start = len(items)
        while start > 0 and items[start - 1].timestamp_ms >= cutoff:
            start -= 1
        return items[start:]

    def size(self, vehicle_id: str) -> int:
        buf = self._buffer(vehicle_id)
        with buf.lock:
            return len(buf.samples)

    def evicted(self, vehicle_id: str) -> int:
        buf = self._buffer(vehicle_id)
        with buf.lock:
            return buf.evicted

    def vehicle_ids(self) -> list[str]:
        with self._registry_lock:
            return sorted(self._buffers)

    def drop(self, vehicle_id: str) -> bool:
        """Deregister a vehicle and discard its history."""
        with self._registry_lock:
            removed = self._buffers.pop(vehicle_id, None)
        if removed is not None:
            log.info("vehicle_dropped", vehicle=vehicle_id)
        return removed is not None

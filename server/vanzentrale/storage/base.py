"""Storage interface (port) for per-vehicle sample history."""

from __future__ import annotations

from typing import Callable, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from vanzentrale.core.models import Sample


class SampleStore(Protocol):
    """Port: bounded, order-preserving history of samples per vehicle.

    Reads for a vehicle that never reported raise NotFoundError.
    """

    def append(
        self,
        vehicle_id: str,
        sample: Sample,
        *,
        received_ms: int,
        on_commit: Callable[[Sample], None] | None = None,
    ) -> Sample: ...

    def latest(self, vehicle_id: str) -> Sample: ...

    def history(self, vehicle_id: str, limit: int) -> list[Sample]: ...

    def window(self, vehicle_id: str, duration_ms: int) -> list[Sample]: ...

    def size(self, vehicle_id: str) -> int: ...

    def vehicle_ids(self) -> list[str]: ...

    def drop(self, vehicle_id: str) -> bool: ...

"""Weather provider interface (port)."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from vanzentrale.core.models import WeatherData


class WeatherProvider(Protocol):
    """Port: fetches the current weather report from an external source."""

    async def fetch(self) -> WeatherData: ...

    async def aclose(self) -> None: ...

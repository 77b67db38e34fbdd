"""HTTP weather provider.

Fetches a JSON document shaped like the sample's ``weather`` block:
``{"condition": "Rain", "external_temp_c": 9.5, "forecast_text": "..."}``.
"""

from __future__ import annotations

import httpx

from vanzentrale.core.models import WeatherData
from vanzentrale.core.validation import parse_weather


class HttpWeatherProvider:
    """WeatherProvider backed by an HTTP JSON endpoint."""

    def __init__(self, url: str, timeout_seconds: float = 5.0,
                 client: httpx.AsyncClient | None = None) -> None:
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def fetch(self) -> WeatherData:
        """Raises httpx.HTTPError on transport/status errors, ValueError on bad JSON."""
        resp = await self._client.get(self._url)
        resp.raise_for_status()
        report = parse_weather(resp.json())
        if report is None:
            raise ValueError("weather response is not a JSON object")
        return report

    async def aclose(self) -> None:
        await self._client.aclose()

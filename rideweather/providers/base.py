"""Interface for upstream weather providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from rideweather.domain import ForecastPoint, WeatherData


class WeatherProvider(Protocol):
    """Anything that can turn a forecast point into WeatherData."""

    name: str

    def fetch(self, point: ForecastPoint) -> WeatherData:
        """Return weather at the point's location and time, or raise an AppError."""
        ...


@dataclass
class CallableWeatherProvider(WeatherProvider):
    """Wrap a plain function so it can stand in for a provider (tests, scripts)."""

    fetch_fn: Callable[[ForecastPoint], WeatherData]
    name: str = "callable"

    def fetch(self, point: ForecastPoint) -> WeatherData:
        """Delegate to the configured callable."""
        return self.fetch_fn(point)

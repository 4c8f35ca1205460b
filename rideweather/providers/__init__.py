"""Upstream weather providers behind a common interface."""

from .base import CallableWeatherProvider, WeatherProvider
from .factory import build_provider
from .mock import MockWeatherProvider
from .openweather import OpenWeatherProvider

__all__ = [
    "build_provider",
    "CallableWeatherProvider",
    "MockWeatherProvider",
    "OpenWeatherProvider",
    "WeatherProvider",
]

"""Factory helpers for choosing a weather provider at startup."""

from __future__ import annotations

import requests_cache

from rideweather import config
from rideweather.providers.base import WeatherProvider
from rideweather.providers.mock import MockWeatherProvider
from rideweather.rate_limit import ProviderCallBudget
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="providers/factory")


DEFAULT_SOURCE_NAME = "mock"


def build_cached_session(settings: config.Settings) -> requests_cache.CachedSession:
    """HTTP session whose GET responses are cached for `cache_duration_seconds`."""
    return requests_cache.CachedSession(
        settings.cache_name,
        expire_after=settings.cache_duration_seconds,
        allowable_methods=("GET",),
    )


def build_provider(settings: config.Settings | None = None) -> WeatherProvider:
    """Instantiate the configured weather provider."""
    settings = settings or config.settings
    source = (settings.weather_source or DEFAULT_SOURCE_NAME).lower()

    if source == "mock":
        logger.info("Using mock weather provider")
        return MockWeatherProvider()

    if source == "openweather":
        from .openweather import OpenWeatherProvider

        if not settings.openweather_api_key:
            raise ValueError("openweather_api_key must be set for the OpenWeather provider")
        logger.info(
            "Using OpenWeather provider",
            extra={"base_url": settings.openweather_base_url, "cache": settings.cache_name},
        )
        return OpenWeatherProvider(
            settings.openweather_api_key,
            build_cached_session(settings),
            base_url=settings.openweather_base_url,
            timeout=settings.provider_timeout_seconds,
            budget=ProviderCallBudget(settings.provider_rate_limit),
        )

    raise ValueError(f"Unknown weather source '{source}'")

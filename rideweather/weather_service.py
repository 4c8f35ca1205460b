"""Server-side weather lookups: provider calls with retries, route analysis."""
from __future__ import annotations

import datetime as dt
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from rideweather.batching import run_in_batches
from rideweather.domain import ForecastPoint, GPXData, WeatherData
from rideweather.errors import AppError, ValidationError
from rideweather.forecast_points import generate_forecast_points
from rideweather.gpx_parser import (
    estimate_track_points,
    has_elevation_data,
    has_timestamp_data,
    has_valid_coordinates,
    parse_gpx,
    validate_gpx_content,
)
from rideweather.providers.base import WeatherProvider
from rideweather.validation import validate_point
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="weather_service")

BATCH_SIZE = 5
BATCH_DELAY_SECONDS = 0.2
MAX_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 1.0


@dataclass
class RouteForecast:
    """A parsed route, its forecast points and the weather at each point."""
    route: GPXData
    points: List[ForecastPoint] = field(default_factory=list)
    weather: List[Optional[WeatherData]] = field(default_factory=list)

    @property
    def weather_available(self) -> int:
        return sum(1 for w in self.weather if w is not None)


class WeatherService:
    """
    Resolve weather for forecast points through an upstream provider.

    Upstream call budgets belong to the provider, so cache hits stay free;
    multi-point lookups retry each point with linear backoff.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        *,
        sleep: Callable[[float], None] = time.sleep,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        retry_base_delay: float = RETRY_BASE_DELAY_SECONDS,
    ) -> None:
        self.provider = provider
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="provider-fetch")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def get_weather(self, candidate: Any) -> WeatherData:
        """Weather for one point; raises ValidationError, RateLimitError or provider errors."""
        return self.provider.fetch(validate_point(candidate))

    def _get_with_retries(self, index: int, point: Any) -> Optional[WeatherData]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.get_weather(point)
            except ValidationError as exc:
                logger.warning("Skipping invalid point %s: %s", index, exc.message)
                return None
            except AppError as exc:
                if attempt == self.max_attempts:
                    logger.warning(
                        "Failed to fetch forecast for point %s after %s attempts: %s",
                        index,
                        self.max_attempts,
                        exc.message,
                    )
                    return None
                delay = self.retry_base_delay * attempt
                logger.info("Retry %s/%s for point %s in %.1fs", attempt, self.max_attempts - 1, index, delay)
                self._sleep(delay)
            except Exception:
                logger.exception("Unexpected error fetching forecast for point %s", index)
                return None
        return None

    def get_weather_for_points(self, points: Sequence[Any]) -> List[Optional[WeatherData]]:
        """Weather per point in input order; None where the point could not be served."""
        if not points:
            raise ValidationError("Invalid points array")
        return run_in_batches(
            list(points),
            self._get_with_retries,
            batch_size=self.batch_size,
            batch_delay=self.batch_delay,
            executor=self._executor,
            sleep=self._sleep,
        )

    def analyze_route(
        self,
        content: str,
        *,
        interval_km: float,
        start_time: dt.datetime,
        avg_speed_kmh: float,
    ) -> RouteForecast:
        """Validate and parse GPX content, resample it, and fetch weather along it."""
        validate_gpx_content(content)
        logger.debug(
            "GPX content summary",
            extra={
                "estimated_points": estimate_track_points(content),
                "has_coordinates": has_valid_coordinates(content),
                "has_elevation": has_elevation_data(content),
                "has_timestamps": has_timestamp_data(content),
            },
        )
        route = parse_gpx(content)
        points = generate_forecast_points(route, interval_km, start_time, avg_speed_kmh)
        weather = self.get_weather_for_points(points) if points else []

        forecast = RouteForecast(route=route, points=points, weather=weather)
        logger.info(
            "Analyzed route",
            extra={
                "route_name": route.name,
                "points": len(points),
                "weather_available": forecast.weather_available,
            },
        )
        return forecast

"""OpenWeather current/forecast lookups normalized into WeatherData."""
from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

import requests
from pydantic import ValidationError as SchemaValidationError

from rideweather.domain import ForecastPoint, WeatherData
from rideweather.errors import NetworkError, UpstreamError
from rideweather.rate_limit import ProviderCallBudget
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="openweather")

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"

# Points within this many seconds of now use the current-conditions endpoint.
CURRENT_WINDOW_SECONDS = 3 * 3600
COORD_PRECISION = 4


def _closest_entry(entries: list, timestamp: int) -> Dict[str, Any]:
    """Forecast entry whose `dt` is nearest to `timestamp`."""
    return min(entries, key=lambda entry: abs(entry.get("dt", 0) - timestamp))


def _num(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _normalize(entry: Dict[str, Any], *, rain_key: str, timestamp: int) -> WeatherData:
    """Map an OpenWeather current/forecast entry (metric units) onto WeatherData."""
    main = entry.get("main") or {}
    wind = entry.get("wind") or {}
    condition = (entry.get("weather") or [{}])[0]
    rain = _num((entry.get("rain") or {}).get(rain_key)) or 0.0
    snow = _num((entry.get("snow") or {}).get(rain_key)) or 0.0
    pop = _num(entry.get("pop"))

    return WeatherData(
        temperature=_num(main.get("temp")) or 0.0,
        feels_like=_num(main.get("feels_like")) or 0.0,
        humidity=_num(main.get("humidity")),
        pressure=_num(main.get("pressure")),
        wind_speed=_num(wind.get("speed")),
        wind_direction=_num(wind.get("deg")),
        wind_gust=_num(wind.get("gust")),
        rain=rain,
        snow=snow,
        precipitation=rain + snow,
        precipitation_probability=pop,
        clouds=_num((entry.get("clouds") or {}).get("all")),
        visibility=_num(entry.get("visibility")),
        weather_icon=condition.get("icon", "01d"),
        weather_description=condition.get("description", "Unknown"),
        timestamp=int(entry.get("dt") or timestamp),
    )


class OpenWeatherProvider:
    """
    Fetch weather for a forecast point from the OpenWeather 2.5 API.

    The injected session is expected to be a requests_cache.CachedSession in
    production (see providers.factory); coordinates are rounded so nearby
    points along a route share cache entries.
    When a `budget` is given, only requests that miss the cache are charged.
    """

    name = "openweather"

    def __init__(
        self,
        api_key: str,
        session: requests.Session,
        *,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout: float = 5.0,
        budget: Optional[ProviderCallBudget] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not api_key:
            raise ValueError("OpenWeather API key is required")
        self.api_key = api_key
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.budget = budget
        self._clock = clock

    def _is_cached(self, url: str, params: Dict[str, Any]) -> bool:
        cache = getattr(self.session, "cache", None)
        if cache is None:
            return False
        request = self.session.prepare_request(requests.Request("GET", url, params=params))
        return cache.contains(request=request)

    def _get(self, endpoint: str, point: ForecastPoint) -> Dict[str, Any]:
        params = {
            "lat": round(point.lat, COORD_PRECISION),
            "lon": round(point.lon, COORD_PRECISION),
            "units": "metric",
            "appid": self.api_key,
        }
        url = f"{self.base_url}/{endpoint}"
        if self.budget is not None and not self._is_cached(url, params):
            self.budget.check()
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            raise NetworkError("Request timeout: OpenWeather API did not respond in time") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"OpenWeather request failed: {exc}") from exc

        if getattr(resp, "from_cache", False):
            logger.debug("OpenWeather cache hit", extra={"url": mask_url_secrets(resp.url)})

        if not resp.ok:
            logger.warning(
                "OpenWeather API error %s for %s",
                resp.status_code,
                mask_url_secrets(resp.url or url),
            )
            raise UpstreamError(
                f"OpenWeather API error: {resp.status_code} - {resp.reason}",
                details={"status": resp.status_code},
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamError("Invalid JSON received from OpenWeather") from exc
        if not isinstance(payload, dict):
            raise UpstreamError("Unexpected OpenWeather payload shape")
        return payload

    def fetch(self, point: ForecastPoint) -> WeatherData:
        """Current conditions for near-term points, else the closest 3-hourly forecast entry."""
        is_current = abs(point.timestamp - self._clock()) < CURRENT_WINDOW_SECONDS
        try:
            if is_current:
                data = self._get("weather", point)
                return _normalize(data, rain_key="1h", timestamp=point.timestamp)

            data = self._get("forecast", point)
            entries = data.get("list")
            if not isinstance(entries, list) or not entries:
                raise UpstreamError("Invalid forecast data received from OpenWeather")
            return _normalize(_closest_entry(entries, point.timestamp), rain_key="3h", timestamp=point.timestamp)
        except SchemaValidationError as exc:
            raise UpstreamError("OpenWeather returned out-of-range values") from exc
        except (TypeError, ValueError, AttributeError) as exc:
            raise UpstreamError("Malformed OpenWeather payload") from exc

"""Batched client for the RideWeather `POST /weather` endpoint.

Points are validated locally, sent in fixed-size concurrent batches with a
pause between batches, and each request is retried on timeouts and connection
failures. Every point ends up as a `PointResult` at its own index; the legacy
view (`fetch_weather_for_points`) reduces that to `WeatherData | None`.
"""
from __future__ import annotations

import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from rideweather.batching import run_in_batches
from rideweather.config import settings
from rideweather.domain import ForecastPoint, Outcome, PointResult, WeatherData
from rideweather.errors import (
    APIError,
    AppError,
    ErrorType,
    MalformedResponseError,
    NetworkError,
)
from rideweather.validation import is_valid_point, validate_point
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="weather_client")

__all__ = [
    "WeatherClient",
    "WeatherClientConfig",
    "fetch_weather_for_points",
    "is_valid_point",
    "resolve_config",
    "summarize_results",
    "validate_point",
]

_OUTCOME_BY_CODE = {
    ErrorType.VALIDATION: Outcome.VALIDATION_ERROR,
    ErrorType.NETWORK: Outcome.NETWORK_ERROR,
    ErrorType.API: Outcome.API_ERROR,
    ErrorType.MALFORMED_RESPONSE: Outcome.MALFORMED_RESPONSE,
}


class WeatherClientConfig(BaseModel):
    """Endpoint, retry and batching parameters for WeatherClient."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)  # seconds
    timeout: float = Field(default=10.0, gt=0)  # seconds
    batch_size: int = Field(default=5, ge=1)
    batch_delay: float = Field(default=0.5, ge=0)  # seconds

    @classmethod
    def from_settings(cls, s=None) -> "WeatherClientConfig":
        """Defaults from RIDEWEATHER_CLIENT_* environment settings."""
        s = s or settings
        return cls(
            base_url=s.client_base_url,
            max_retries=s.client_max_retries,
            retry_delay=s.client_retry_delay_seconds,
            timeout=s.client_timeout_seconds,
            batch_size=s.client_batch_size,
            batch_delay=s.client_batch_delay_seconds,
        )


ConfigLike = Union[WeatherClientConfig, Mapping[str, Any], None]


def resolve_config(config: ConfigLike = None) -> WeatherClientConfig:
    """Merge a partial override mapping onto the settings-derived defaults."""
    if isinstance(config, WeatherClientConfig):
        return config
    base = WeatherClientConfig.from_settings()
    if not config:
        return base
    merged = {**base.model_dump(), **dict(config)}
    merged["base_url"] = str(merged["base_url"]).rstrip("/")
    return WeatherClientConfig(**merged)


def summarize_results(results: Iterable[PointResult]) -> Dict[str, int]:
    """Count results per outcome (every outcome present, zero if unseen)."""
    counts = Counter(r.outcome for r in results)
    return {outcome.value: counts.get(outcome, 0) for outcome in Outcome}


class WeatherClient:
    """
    Fetch weather for many forecast points against one RideWeather endpoint.

    The client owns a requests.Session (unless one is injected) and a worker
    pool sized to the batch, so at most `batch_size` requests are in flight.
    Use it as a context manager or call close() when done.
    """

    def __init__(
        self,
        config: ConfigLike = None,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = resolve_config(config)
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.batch_size,
            thread_name_prefix="weather-fetch",
        )

    def __enter__(self) -> "WeatherClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Stop the worker pool and close the session if we created it."""
        self._executor.shutdown(wait=True)
        if self._owns_session:
            self.session.close()

    def fetch_results(self, points: Optional[Iterable[Any]]) -> List[PointResult]:
        """Return one PointResult per input point, in input order. Never raises for per-point failures."""
        items = list(points or [])
        if not items:
            return []

        logger.info(
            "Fetching weather for points",
            extra={"points": len(items), "batch_size": self.config.batch_size, "base_url": self.config.base_url},
        )
        results = run_in_batches(
            items,
            self._resolve_one,
            batch_size=self.config.batch_size,
            batch_delay=self.config.batch_delay,
            executor=self._executor,
            sleep=self._sleep,
        )

        summary = summarize_results(results)
        if summary[Outcome.OK.value] == 0:
            logger.warning("No weather could be fetched for any point", extra={"summary": summary})
        else:
            logger.info("Fetched weather for points", extra={"summary": summary})
        return results

    def fetch_weather(self, points: Optional[Iterable[Any]]) -> List[Optional[WeatherData]]:
        """Legacy view: WeatherData per index, None where the lookup failed."""
        return [result.weather for result in self.fetch_results(points)]

    def fetch_point(self, candidate: Any) -> WeatherData:
        """Validate and fetch a single point, raising the typed error on failure."""
        return self._request_weather(validate_point(candidate))

    def _resolve_one(self, index: int, candidate: Any) -> PointResult:
        try:
            weather = self.fetch_point(candidate)
        except AppError as exc:
            logger.warning(
                "Weather lookup failed for point %s: %s",
                index,
                exc.message,
                extra={"index": index, "error_code": exc.code.value},
            )
            return PointResult(
                index=index,
                point=candidate,
                outcome=_OUTCOME_BY_CODE.get(exc.code, Outcome.UNKNOWN_ERROR),
                status_code=exc.status if isinstance(exc, APIError) else None,
                detail=exc.message,
            )
        except Exception as exc:
            logger.exception("Unexpected error fetching weather for point %s", index, extra={"index": index})
            return PointResult(index=index, point=candidate, outcome=Outcome.UNKNOWN_ERROR, detail=str(exc))
        return PointResult(index=index, point=candidate, outcome=Outcome.OK, weather=weather)

    def _request_weather(self, point: ForecastPoint) -> WeatherData:
        url = f"{self.config.base_url}/weather"
        attempt = 0
        while True:
            try:
                resp = self.session.post(
                    url,
                    json=point.to_request_body(),
                    headers={"Content-Type": "application/json"},
                    timeout=self.config.timeout,
                )
            except requests.Timeout:
                failure = "Request timed out"
            except (requests.ConnectionError, requests.exceptions.ChunkedEncodingError):
                failure = "Network error"
            except requests.RequestException as exc:
                raise NetworkError(f"Request failed: {exc}") from exc
            else:
                return self._parse_response(resp)

            attempt += 1
            if attempt > self.config.max_retries:
                raise NetworkError(failure, details={"attempts": attempt})
            logger.info(
                "%s; retrying in %.1fs (retry %d/%d)",
                failure,
                self.config.retry_delay,
                attempt,
                self.config.max_retries,
                extra={"lat": point.lat, "lon": point.lon},
            )
            self._sleep(self.config.retry_delay)

    @staticmethod
    def _parse_response(resp: requests.Response) -> WeatherData:
        if not 200 <= resp.status_code < 300:
            body = resp.text
            raise APIError(
                f"API error ({resp.status_code}): {body or resp.reason}",
                status=resp.status_code,
                body=body,
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Invalid API response format") from exc
        try:
            return WeatherData.model_validate(payload)
        except SchemaValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
            raise MalformedResponseError(
                "Invalid API response format", details={"fields": fields}
            ) from exc


def fetch_weather_for_points(
    points: Optional[Iterable[Any]],
    config: ConfigLike = None,
    *,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Optional[WeatherData]]:
    """
    Fetch weather for `points`; always returns a list of the same length.

    Slots hold WeatherData on success and None on any failure. `config` may be a
    WeatherClientConfig or a mapping of overrides (e.g. {"max_retries": 1}).
    """
    items = list(points or [])
    if not items:
        return []
    with WeatherClient(config, session=session, sleep=sleep) as client:
        return client.fetch_weather(items)

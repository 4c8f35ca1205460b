"""HTTP API for route weather lookups."""

import datetime as dt
import hmac
import math
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, Request, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import settings
from .domain import ForecastPoint, WeatherData
from .errors import AppError, GPXError
from .gpx_parser import validate_gpx_file
from .rate_limit import WEATHER_SCOPE, client_rate_limit, limiter
from .weather_service import RouteForecast, WeatherService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="rideweather/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured static key, if any."""
    if not settings.api_key:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def get_weather_service(request: Request) -> WeatherService:
    return request.app.state.weather_service


router = APIRouter(dependencies=[Depends(require_api_key)])

# One per-client budget shared by every weather route.
rate_limited = limiter.shared_limit(client_rate_limit, scope=WEATHER_SCOPE)


def _http_error(exc: AppError) -> HTTPException:
    """Translate a domain error into the HTTP status it carries."""
    if exc.status >= 500:
        logger.error("Weather lookup failed: %s", exc.message, extra={"error_code": exc.code.value})
    return HTTPException(status_code=exc.status, detail=exc.message)


class PointRequest(BaseModel):
    """A forecast point as sent by clients."""
    model_config = ConfigDict(strict=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    timestamp: int  # unix seconds; fractional seconds are truncated
    distance: float = Field(default=0.0, ge=0)

    @field_validator("timestamp", mode="before")
    @classmethod
    def truncate_timestamp(cls, v):
        if isinstance(v, float) and math.isfinite(v):
            return int(v)
        return v

    def to_point(self) -> ForecastPoint:
        return ForecastPoint(lat=self.lat, lon=self.lon, timestamp=self.timestamp, distance=self.distance)


class BatchWeatherRequest(BaseModel):
    """Several forecast points in one request."""
    points: list[PointRequest] = Field(min_length=1)


class BatchWeatherResponse(BaseModel):
    """Weather per requested point; null where it could not be fetched."""
    data: list[Optional[WeatherData]]


class ForecastPointWeather(BaseModel):
    """A forecast point along the route merged with its weather."""
    lat: float
    lon: float
    timestamp: int
    distance: float
    weather: Optional[WeatherData] = None


class RouteForecastResponse(BaseModel):
    """Route summary plus weather at every forecast point."""
    name: str
    total_distance_km: float
    elevation_gain_m: float
    elevation_loss_m: float
    max_elevation_m: Optional[float] = None
    min_elevation_m: Optional[float] = None
    weather_available: int
    points: list[ForecastPointWeather]

    @classmethod
    def from_forecast(cls, forecast: RouteForecast) -> "RouteForecastResponse":
        route = forecast.route
        return cls(
            name=route.name,
            total_distance_km=round(route.total_distance, 3),
            elevation_gain_m=round(route.elevation_gain, 1),
            elevation_loss_m=round(route.elevation_loss, 1),
            max_elevation_m=route.max_elevation,
            min_elevation_m=route.min_elevation,
            weather_available=forecast.weather_available,
            points=[
                ForecastPointWeather(
                    lat=p.lat, lon=p.lon, timestamp=p.timestamp, distance=round(p.distance, 3), weather=w
                )
                for p, w in zip(forecast.points, forecast.weather)
            ],
        )


@router.post("/weather", response_model=WeatherData, response_model_exclude_none=True)
@rate_limited
def post_weather(request: Request, req: PointRequest, service: WeatherService = Depends(get_weather_service)):
    """Weather for a single forecast point (the endpoint WeatherClient calls)."""
    try:
        return service.get_weather(req.to_point())
    except AppError as exc:
        raise _http_error(exc)


@router.get("/weather", response_model=WeatherData, response_model_exclude_none=True)
@rate_limited
def get_weather(
    request: Request,
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    timestamp: float = Query(allow_inf_nan=False),
    distance: float = Query(default=0.0, ge=0),
    service: WeatherService = Depends(get_weather_service),
):
    """Query-string variant of POST /weather."""
    point = ForecastPoint(lat=lat, lon=lon, timestamp=int(timestamp), distance=distance)
    try:
        return service.get_weather(point)
    except AppError as exc:
        raise _http_error(exc)


@router.post("/weather/batch", response_model=BatchWeatherResponse)
@rate_limited
def post_weather_batch(request: Request, req: BatchWeatherRequest, service: WeatherService = Depends(get_weather_service)):
    """Weather for up to `max_points_per_request` points, in request order."""
    if len(req.points) > settings.max_points_per_request:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many points requested. Maximum batch size is {settings.max_points_per_request} points.",
        )
    try:
        data = service.get_weather_for_points([p.to_point() for p in req.points])
    except AppError as exc:
        raise _http_error(exc)

    if not any(w is not None for w in data):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No weather data could be retrieved for the provided points.",
        )
    return BatchWeatherResponse(data=data)


@router.post("/routes/forecast", response_model=RouteForecastResponse)
@rate_limited
def post_route_forecast(
    request: Request,
    file: UploadFile = File(...),
    interval_km: float = Form(default=settings.forecast_interval_km, gt=0, le=50),
    avg_speed_kmh: float = Form(default=settings.avg_speed_kmh, ge=1, le=100),
    start_time: Optional[dt.datetime] = Form(default=None),
    service: WeatherService = Depends(get_weather_service),
):
    """Upload a GPX file and get weather at regular intervals along the route."""
    raw = file.file.read(settings.max_gpx_bytes + 1)
    try:
        validate_gpx_file(file.filename, len(raw), max_bytes=settings.max_gpx_bytes)
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise GPXError("GPX file is not valid UTF-8 text") from exc

        start = start_time or dt.datetime.now(dt.timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=dt.timezone.utc)

        logger.info(
            "Analyzing uploaded route",
            extra={"upload": file.filename, "bytes": len(raw), "interval_km": interval_km},
        )
        forecast = service.analyze_route(
            content,
            interval_km=interval_km,
            start_time=start,
            avg_speed_kmh=avg_speed_kmh,
        )
    except AppError as exc:
        raise _http_error(exc)

    return RouteForecastResponse.from_forecast(forecast)

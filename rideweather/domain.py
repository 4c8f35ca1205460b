"""Domain vocabulary for route weather: points, weather payloads and results.

`ForecastPoint` and the GPX types are plain dataclasses produced by our own
code. `WeatherData` is the schema enforced at the trust boundary: anything that
arrives over HTTP (from the RideWeather API or from an upstream provider) is
validated against it exactly once. Its wire form uses camelCase keys.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class ForecastPoint:
    """A resampled location/time pair along a route."""
    lat: float
    lon: float
    timestamp: int  # unix seconds
    distance: float = 0.0  # km from route start

    def to_request_body(self) -> Dict[str, Any]:
        """JSON body sent to POST {base_url}/weather."""
        return {"lat": self.lat, "lon": self.lon, "timestamp": self.timestamp}


class WeatherData(BaseModel):
    """Weather at one forecast point, as served by POST /weather."""

    model_config = ConfigDict(
        strict=True,
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        allow_inf_nan=False,
        extra="ignore",
    )

    temperature: float
    feels_like: float
    humidity: Optional[float] = Field(default=None, ge=0, le=100)
    pressure: Optional[float] = Field(default=None, ge=800, le=1200)
    wind_speed: Optional[float] = Field(default=None, ge=0)
    wind_direction: Optional[float] = Field(default=None, ge=0, le=360)
    wind_gust: Optional[float] = Field(default=None, ge=0)
    rain: Optional[float] = Field(default=None, ge=0)
    snow: Optional[float] = Field(default=None, ge=0)
    precipitation: Optional[float] = Field(default=None, ge=0)
    precipitation_probability: Optional[float] = Field(default=None, ge=0, le=1)
    uv_index: Optional[float] = Field(default=None, ge=0)
    clouds: Optional[float] = Field(default=None, ge=0, le=100)
    visibility: Optional[float] = Field(default=None, ge=0)
    weather_icon: Optional[str] = None
    weather_description: Optional[str] = None
    timestamp: Optional[int] = None

    def to_wire(self) -> Dict[str, Any]:
        """camelCase dict without unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Outcome(str, Enum):
    """How a single point's weather lookup ended."""
    OK = "ok"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN_ERROR = "unknown_error"


@dataclass
class PointResult:
    """Per-index result of a batched weather lookup."""
    index: int
    point: Any
    outcome: Outcome
    weather: Optional[WeatherData] = None
    status_code: Optional[int] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


@dataclass
class RoutePoint:
    """A parsed GPX track/route point with its cumulative distance."""
    lat: float
    lon: float
    elevation: Optional[float]
    time: Optional[dt.datetime]
    distance: float  # km from the first point


@dataclass
class GPXData:
    """Parsed GPX route plus summary statistics."""
    name: str
    points: List[RoutePoint] = field(default_factory=list)
    total_distance: float = 0.0  # km
    elevation_gain: float = 0.0  # m
    elevation_loss: float = 0.0  # m
    max_elevation: Optional[float] = None
    min_elevation: Optional[float] = None

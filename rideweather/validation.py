"""Forecast point validation shared by the client and the service."""
from __future__ import annotations

import math
from typing import Any, Mapping

from rideweather.domain import ForecastPoint
from rideweather.errors import ValidationError


def _field(candidate: Any, name: str) -> Any:
    if isinstance(candidate, Mapping):
        return candidate.get(name)
    return getattr(candidate, name, None)


def _is_number(value: Any) -> bool:
    # bool is an int subclass; NaN/inf never fall inside a coordinate range
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def is_valid_point(candidate: Any) -> bool:
    """True if lat/lon/timestamp are numbers and lat/lon are within range."""
    if candidate is None:
        return False
    lat = _field(candidate, "lat")
    lon = _field(candidate, "lon")
    timestamp = _field(candidate, "timestamp")
    if not (_is_number(lat) and _is_number(lon) and _is_number(timestamp)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def validate_point(candidate: Any) -> ForecastPoint:
    """Return `candidate` as a ForecastPoint or raise ValidationError."""
    if not is_valid_point(candidate):
        raise ValidationError("Invalid forecast point", details={"point": repr(candidate)})
    if isinstance(candidate, ForecastPoint):
        return candidate
    distance = _field(candidate, "distance")
    return ForecastPoint(
        lat=_field(candidate, "lat"),
        lon=_field(candidate, "lon"),
        timestamp=_field(candidate, "timestamp"),
        distance=distance if _is_number(distance) else 0.0,
    )

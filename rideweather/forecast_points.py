"""Resample a parsed route into forecast points at fixed distance intervals."""
from __future__ import annotations

import datetime as dt
from typing import List, Sequence

from rideweather.domain import ForecastPoint, GPXData, RoutePoint
from rideweather.errors import ValidationError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_points")


def _bracket(points: Sequence[RoutePoint], distance: float) -> tuple[RoutePoint, RoutePoint]:
    """Return the consecutive route points whose distances straddle `distance`."""
    for before, after in zip(points, points[1:]):
        if before.distance <= distance <= after.distance:
            return before, after
    return points[-1], points[-1]


def _interpolate(points: Sequence[RoutePoint], distance: float) -> tuple[float, float]:
    before, after = _bracket(points, distance)
    span = after.distance - before.distance
    if span <= 0:
        return before.lat, before.lon
    ratio = (distance - before.distance) / span
    return (
        before.lat + ratio * (after.lat - before.lat),
        before.lon + ratio * (after.lon - before.lon),
    )


def _eta(start_ts: float, distance_km: float, avg_speed_kmh: float) -> int:
    return int(start_ts + distance_km / avg_speed_kmh * 3600)


def generate_forecast_points(
    gpx: GPXData,
    interval_km: float,
    start_time: dt.datetime,
    avg_speed_kmh: float,
) -> List[ForecastPoint]:
    """
    Place a forecast point every `interval_km` along the route.

    The first point is the route start (distance 0, timestamp `start_time`);
    intermediate points are linearly interpolated between the bracketing route
    points with an ETA derived from `avg_speed_kmh`; the last point is always
    the route end at the total distance.
    """
    if interval_km <= 0:
        raise ValidationError("interval_km must be positive", details={"interval_km": interval_km})
    if avg_speed_kmh <= 0:
        raise ValidationError("avg_speed_kmh must be positive", details={"avg_speed_kmh": avg_speed_kmh})
    if not gpx or not gpx.points:
        return []

    route = gpx.points
    start_ts = start_time.timestamp()
    out: List[ForecastPoint] = [
        ForecastPoint(lat=route[0].lat, lon=route[0].lon, timestamp=int(start_ts), distance=0.0)
    ]

    step = 1
    distance = interval_km
    while distance < gpx.total_distance:
        lat, lon = _interpolate(route, distance)
        out.append(
            ForecastPoint(lat=lat, lon=lon, timestamp=_eta(start_ts, distance, avg_speed_kmh), distance=distance)
        )
        step += 1
        distance = interval_km * step

    if gpx.total_distance > 0:
        end = route[-1]
        out.append(
            ForecastPoint(
                lat=end.lat,
                lon=end.lon,
                timestamp=_eta(start_ts, gpx.total_distance, avg_speed_kmh),
                distance=gpx.total_distance,
            )
        )

    logger.debug(
        "Generated forecast points",
        extra={"count": len(out), "interval_km": interval_km, "total_km": gpx.total_distance},
    )
    return out

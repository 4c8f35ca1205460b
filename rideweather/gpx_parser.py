"""GPX upload checks and parsing into RoutePoints with cumulative distance."""
from __future__ import annotations

import re
from math import asin, cos, radians, sin, sqrt
from pathlib import PurePath
from typing import List, Optional

import gpxpy
import gpxpy.gpx

from rideweather.domain import GPXData, RoutePoint
from rideweather.errors import GPXError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="gpx_parser")

EARTH_RADIUS_KM = 6371.0
MAX_GPX_BYTES = 10 * 1024 * 1024
MIN_CONTENT_CHARS = 100
VALID_EXTENSIONS = {".gpx"}

_LAT_RE = re.compile(r"""lat=["'](-?\d+(\.\d+)?)["']""")
_LON_RE = re.compile(r"""lon=["'](-?\d+(\.\d+)?)["']""")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(sqrt(a))


def validate_gpx_file(filename: Optional[str], size: int, *, max_bytes: int = MAX_GPX_BYTES) -> None:
    """Reject uploads that are not .gpx, are empty, or exceed `max_bytes`."""
    if not filename:
        raise GPXError("No file provided")

    extension = PurePath(filename).suffix.lower()
    if extension not in VALID_EXTENSIONS:
        raise GPXError(f"Invalid file type. Expected .gpx but received {extension or 'no extension'}")

    if size > max_bytes:
        raise GPXError(
            f"File is too large ({size / (1024 * 1024):.2f}MB). "
            f"Maximum size is {max_bytes / (1024 * 1024):.0f}MB"
        )
    if size == 0:
        raise GPXError("File is empty")


def validate_gpx_content(content: str) -> None:
    """Cheap structural checks before handing the document to the XML parser."""
    if not content:
        raise GPXError("Empty GPX content")
    if len(content) < MIN_CONTENT_CHARS:
        raise GPXError("GPX content is too short to be valid")
    if "<gpx" not in content:
        raise GPXError("Missing <gpx> tag. Not a valid GPX file")
    if "</gpx>" not in content:
        raise GPXError("Missing closing </gpx> tag. GPX file may be corrupted")
    if "<trkpt" not in content and "<rtept" not in content:
        raise GPXError("No track or route points found in GPX file")
    if "<?xml" in content and "<?xml version=" not in content:
        raise GPXError("Malformed XML declaration in GPX file")


def has_valid_coordinates(content: str) -> bool:
    return bool(_LAT_RE.search(content) and _LON_RE.search(content))


def estimate_track_points(content: str) -> int:
    return content.count("<trkpt") + content.count("<rtept")


def has_elevation_data(content: str) -> bool:
    return "<ele>" in content


def has_timestamp_data(content: str) -> bool:
    return "<time>" in content


def _collect_points(gpx: gpxpy.gpx.GPX) -> List[gpxpy.gpx.GPXTrackPoint]:
    points = [p for track in gpx.tracks for segment in track.segments for p in segment.points]
    if points:
        return points
    # Planned routes carry <rtept> instead of <trkpt>
    return [p for route in gpx.routes for p in route.points]


def _route_name(gpx: gpxpy.gpx.GPX) -> str:
    if gpx.name:
        return gpx.name
    for item in (*gpx.tracks, *gpx.routes):
        if item.name:
            return item.name
    return "Unnamed Route"


def parse_gpx(content: str) -> GPXData:
    """Parse a GPX document into RoutePoints plus distance/elevation stats."""
    try:
        gpx = gpxpy.parse(content)
    except gpxpy.gpx.GPXException as exc:
        raise GPXError(f"Error parsing GPX file: {exc}") from exc

    raw_points = _collect_points(gpx)
    if not raw_points:
        raise GPXError("No track points found in GPX file")

    data = GPXData(name=_route_name(gpx))
    prev = None
    prev_elevation: Optional[float] = None
    total = 0.0

    for p in raw_points:
        if prev is not None:
            total += haversine_km(prev.latitude, prev.longitude, p.latitude, p.longitude)

        elevation = p.elevation
        if elevation is not None:
            if prev_elevation is not None:
                diff = elevation - prev_elevation
                if diff > 0:
                    data.elevation_gain += diff
                else:
                    data.elevation_loss += -diff
            data.max_elevation = elevation if data.max_elevation is None else max(data.max_elevation, elevation)
            data.min_elevation = elevation if data.min_elevation is None else min(data.min_elevation, elevation)
            prev_elevation = elevation

        data.points.append(
            RoutePoint(lat=p.latitude, lon=p.longitude, elevation=elevation, time=p.time, distance=total)
        )
        prev = p

    data.total_distance = total
    logger.info(
        "Parsed GPX route",
        extra={"route_name": data.name, "points": len(data.points), "distance_km": round(total, 3)},
    )
    return data

"""Deterministic synthetic weather for development and demos."""

import datetime as dt
import random

from rideweather.domain import ForecastPoint, WeatherData


def _base_temperature(hour: int) -> float:
    """Rough diurnal curve in degrees Celsius."""
    base = 15.0
    if 6 <= hour < 12:
        return base + (hour - 6) * 1.5
    if 12 <= hour < 18:
        return base + 9 + (hour - 12) * 0.5
    if 18 <= hour < 24:
        return base + 11 - (hour - 18) * 1.5
    return base + (hour + 6) * 0.5


def _condition(rain: float) -> tuple[str, str]:
    if rain <= 0:
        return "01d", "Clear sky"
    if rain < 2:
        return "10d", "Light rain"
    return "09d", "Moderate rain"


class MockWeatherProvider:
    """Same point in, same weather out; no network."""

    name = "mock"

    def fetch(self, point: ForecastPoint) -> WeatherData:
        rng = random.Random(f"{point.lat:.4f},{point.lon:.4f},{int(point.timestamp) // 3600}")
        hour = dt.datetime.fromtimestamp(point.timestamp, tz=dt.timezone.utc).hour

        # distance stands in for climbing: about -1 degree per 5 km
        temperature = _base_temperature(hour) - point.distance / 5 + rng.uniform(-2, 2)

        rain = 0.0
        if 12 <= hour < 18 and rng.random() > 0.7:
            rain = round(rng.uniform(0, 5), 1)
        icon, description = _condition(rain)

        return WeatherData(
            temperature=round(temperature, 1),
            feels_like=round(temperature - rng.uniform(0, 3), 1),
            humidity=round(rng.uniform(40, 80), 1),
            pressure=round(rng.uniform(1000, 1030), 1),
            wind_speed=round(rng.uniform(5, 20), 1),
            wind_direction=round(rng.uniform(0, 360), 0),
            wind_gust=round(rng.uniform(5, 30), 1),
            rain=rain,
            snow=0.0,
            precipitation=rain,
            precipitation_probability=round(rng.random(), 2),
            uv_index=round(rng.uniform(0, 10), 1),
            weather_icon=icon,
            weather_description=description,
            timestamp=int(point.timestamp),
        )

"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the RideWeather service and client."""
    model_config = SettingsConfigDict(env_prefix="RIDEWEATHER_", extra="ignore")

    # Weather client defaults (see rideweather.weather_client.WeatherClientConfig)
    client_base_url: str = "http://localhost:8000/v1"
    client_max_retries: int = 3
    client_retry_delay_seconds: float = 1.0
    client_timeout_seconds: float = 10.0
    client_batch_size: int = 5
    client_batch_delay_seconds: float = 0.5

    # Upstream provider
    weather_source: str = "mock"  # options: openweather, mock
    openweather_api_key: str | None = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    provider_timeout_seconds: float = 5.0
    cache_name: str = ".rideweather_cache"
    cache_duration_seconds: int = 3600

    # Rate limits in `limits` notation: inbound per client address, outbound per provider
    rate_limit: str = "60/minute"
    provider_rate_limit: str = "60/minute"

    # Request caps and route defaults
    max_points_per_request: int = 100
    max_gpx_bytes: int = 10 * 1024 * 1024
    forecast_interval_km: float = 5.0
    avg_speed_kmh: float = 20.0

    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("client_base_url", "openweather_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'openweather_api_key', 'api_key'})}")

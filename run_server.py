import os

import uvicorn

from rideweather.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def check_provider_config() -> None:
    """
    Fail fast when the OpenWeather provider is selected without an API key.
    Set RIDEWEATHER_WEATHER_SOURCE=mock to run without one during dev/tests.
    """
    if settings.weather_source.lower() == "openweather" and not settings.openweather_api_key:
        logger.error("RIDEWEATHER_OPENWEATHER_API_KEY is not set; use RIDEWEATHER_WEATHER_SOURCE=mock to bypass.")
        raise SystemExit(1)
    logger.info("Using weather source '%s'", settings.weather_source)


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="rideweather-api")
    check_provider_config()

    uvicorn.run(
        "rideweather.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )

"""FastAPI application setup for RideWeather Planner."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .api import router as api_router
from .config import settings
from .providers import build_provider
from .rate_limit import RATE_LIMIT_MESSAGE, limiter
from .weather_service import WeatherService
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the provider and weather service for the app's lifetime."""
    setup_logging(level=settings.log_level, job_name="rideweather-api")
    provider = build_provider(settings)
    app.state.weather_service = WeatherService(provider)
    logger.info("RideWeather API started", extra={"provider": provider.name})
    try:
        yield
    finally:
        app.state.weather_service.close()
        logger.info("RideWeather API stopped")


app = FastAPI(title="RideWeather Planner", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.info("Client rate limit exceeded", extra={"path": request.url.path, "limit": str(exc.detail)})
    return JSONResponse(
        status_code=429,
        content={"detail": RATE_LIMIT_MESSAGE},
        headers={"Retry-After": "60"},
    )


@app.get("/health")
def health():
    """Liveness check."""
    return {"status": "ok"}


app.include_router(api_router, prefix="/v1")

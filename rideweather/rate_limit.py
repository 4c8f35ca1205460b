"""Inbound per-client request limits and the outbound provider call budget."""

from typing import Optional

from limits import parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from rideweather.config import settings
from rideweather.errors import RateLimitError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="rate_limit")

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
WEATHER_SCOPE = "weather-api"

# Keyed on the socket peer address; forwarded headers are left to the proxy.
limiter = Limiter(key_func=get_remote_address)


def client_rate_limit() -> str:
    """Per-client limit string, read on every request so it follows settings."""
    return settings.rate_limit


class ProviderCallBudget:
    """Fixed-window cap on calls made to an upstream provider, shared by all clients."""

    def __init__(self, limit: str, *, storage: Optional[Storage] = None, key: str = "upstream") -> None:
        self.item = parse(limit)
        self.key = key
        self._storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def check(self) -> None:
        """Count one upstream call; raise RateLimitError when the window is exhausted."""
        if not self._strategy.hit(self.item, self.key):
            logger.warning("Provider call budget exhausted", extra={"limit": str(self.item)})
            raise RateLimitError(RATE_LIMIT_MESSAGE, details={"limit": str(self.item)})

    def remaining(self) -> int:
        return self._strategy.get_window_stats(self.item, self.key).remaining

    def reset(self) -> None:
        self._storage.reset()

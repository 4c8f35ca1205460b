"""Error taxonomy shared by the weather client, providers and HTTP API."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """Stable error codes surfaced in logs and API responses."""
    VALIDATION = "validation_error"
    NETWORK = "network_error"
    API = "api_error"
    MALFORMED_RESPONSE = "malformed_response"
    GPX = "gpx_error"
    RATE_LIMIT = "rate_limit_error"
    UPSTREAM = "upstream_error"
    UNKNOWN = "unknown_error"


class AppError(Exception):
    """Base error carrying a code, an HTTP status and optional details."""

    code: ErrorType = ErrorType.UNKNOWN
    status: int = 500

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for API error bodies."""
        return {"code": self.code.value, "message": self.message, "details": self.details}


class ValidationError(AppError):
    """Malformed input (forecast point, request parameters)."""
    code = ErrorType.VALIDATION
    status = 400


class NetworkError(AppError):
    """Connection-level failure or timeout talking to a remote endpoint."""
    code = ErrorType.NETWORK
    status = 503


class APIError(AppError):
    """Non-2xx response from the weather endpoint; carries the HTTP status."""
    code = ErrorType.API

    def __init__(self, message: str, status: int = 500, *, body: str = "",
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status=status, details=details)
        self.body = body


class MalformedResponseError(AppError):
    """2xx response whose body does not match the weather schema."""
    code = ErrorType.MALFORMED_RESPONSE
    status = 502


class GPXError(AppError):
    """Unusable GPX upload (wrong type, too large, unparsable, no points)."""
    code = ErrorType.GPX
    status = 400


class RateLimitError(AppError):
    """Inbound request or outbound provider budget exhausted."""
    code = ErrorType.RATE_LIMIT
    status = 429


class UpstreamError(AppError):
    """The third-party weather provider rejected or garbled a request."""
    code = ErrorType.UPSTREAM
    status = 502

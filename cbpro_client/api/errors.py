"""
Exception hierarchy for the Coinbase Pro client.

Every failure in the request pipeline is raised as a subclass of
CoinbaseProError so callers can catch the whole family or branch on
``kind`` for a specific failure.
"""

from typing import Optional


class CoinbaseProError(Exception):
    """Base class for all client errors."""

    kind = "error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class InvalidCredential(CoinbaseProError):
    """Raised when the API credentials cannot be used to sign requests."""

    kind = "invalid_credential"


class NetworkError(CoinbaseProError):
    """Raised when the transport failed and no response was received."""

    kind = "network_error"


class RateLimited(CoinbaseProError):
    """Raised when the local rate-limit budget is exhausted (nothing was sent)."""

    kind = "rate_limited"

    def __init__(self, message: str, endpoint_class: str, retry_after: float = 0.0,
                 path: Optional[str] = None):
        super().__init__(message, path)
        self.endpoint_class = endpoint_class
        self.retry_after = retry_after


class APIError(CoinbaseProError):
    """Raised for a non-2xx response from the API."""

    kind = "api_error"

    def __init__(self, message: str, status_code: int, error_code: Optional[str] = None,
                 body: bytes = b"", path: Optional[str] = None):
        super().__init__(message, path)
        self.status_code = status_code
        self.error_code = error_code
        self.body = body

    def __str__(self) -> str:
        if self.path:
            return f"{self.status_code} {self.message} ({self.path})"
        return f"{self.status_code} {self.message}"


class DecodeError(CoinbaseProError):
    """Raised when a response body does not match the expected shape."""

    kind = "decode_error"

    def __init__(self, reason: str, raw: bytes = b"", path: Optional[str] = None):
        super().__init__(f"Failed to decode response: {reason}", path)
        self.reason = reason
        self.raw = raw

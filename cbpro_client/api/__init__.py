"""API client module for Coinbase Pro integration."""

from .auth import Credentials, CredentialManager, RequestBuilder, SignedRequest, generate_signature
from .client import CoinbaseProClient, LIVE_URL, SANDBOX_URL
from .decoder import decode, decode_error
from .errors import (
    CoinbaseProError,
    InvalidCredential,
    NetworkError,
    RateLimited,
    APIError,
    DecodeError,
)
from .pagination import Cursor, Page, Paginator
from .ratelimit import RateLimiter, RateLimitPolicy, RateLimitSpec, TokenBucket
from .transport import Transport, RequestsTransport

__all__ = [
    'CoinbaseProClient', 'LIVE_URL', 'SANDBOX_URL',
    'Credentials', 'CredentialManager', 'RequestBuilder', 'SignedRequest', 'generate_signature',
    'decode', 'decode_error',
    'CoinbaseProError', 'InvalidCredential', 'NetworkError', 'RateLimited', 'APIError', 'DecodeError',
    'Cursor', 'Page', 'Paginator',
    'RateLimiter', 'RateLimitPolicy', 'RateLimitSpec', 'TokenBucket',
    'Transport', 'RequestsTransport',
]

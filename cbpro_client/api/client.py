"""
Coinbase Pro API client with authentication and rate limiting.

This module ties the request pipeline together: requests are built and
signed by RequestBuilder, checked against the per-endpoint-class token
buckets, sent through an injectable Transport and decoded into the resource
models. Errors are raised from the CoinbaseProError family.
"""

import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import quote

import requests

from ..data.models import Account, AccountActivity, AccountHold, ListAccount
from .auth import Credentials, RequestBuilder, SignedRequest
from .decoder import decode, decode_error
from .errors import NetworkError
from .pagination import Paginator
from .ratelimit import RateLimiter
from .transport import RequestsTransport, Transport


logger = logging.getLogger(__name__)

LIVE_URL = "https://api.pro.coinbase.com"
SANDBOX_URL = "https://api-public.sandbox.pro.coinbase.com"


class CoinbaseProClient:
    """
    Coinbase Pro REST client.

    One instance may be shared between threads. The rate-limit buckets are
    the only mutable shared state and are guarded by their own locks. No
    request is ever retried implicitly.
    """

    def __init__(self, key: str, secret: str, passphrase: str, sandbox: bool = False,
                 transport: Optional[Transport] = None,
                 clock: Optional[Callable[[], float]] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 timeout: Optional[float] = 10.0,
                 base_url: Optional[str] = None):
        """
        Initialize the client.

        Args:
            key: API key
            secret: base64-encoded API secret
            passphrase: API passphrase
            sandbox: use the sandbox REST API instead of the live one
            transport: HTTP transport (defaults to a requests.Session based one)
            clock: Unix time source for request timestamps (defaults to time.time)
            rate_limiter: per-endpoint-class limiter (defaults to fail-fast with documented limits)
            timeout: default request timeout in seconds
            base_url: override the REST base URL

        Raises:
            InvalidCredential: if the credentials are missing or the secret is not base64
        """
        self.credentials = Credentials(key=key, secret=secret, passphrase=passphrase)
        self.sandbox = sandbox
        self.base_url = base_url or (SANDBOX_URL if sandbox else LIVE_URL)
        self.transport = transport or RequestsTransport()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout = timeout
        self.builder = RequestBuilder(self.credentials, self.base_url, clock=clock)

        logger.info(f"Coinbase Pro client initialized ({'sandbox' if sandbox else 'live'})")

    @classmethod
    def sandbox_client(cls, key: str, secret: str, passphrase: str, **kwargs) -> "CoinbaseProClient":
        """Create a client connected to the sandbox REST API."""
        return cls(key, secret, passphrase, sandbox=True, **kwargs)

    @classmethod
    def from_credentials(cls, credentials: Credentials, **kwargs) -> "CoinbaseProClient":
        return cls(credentials.key, credentials.secret, credentials.passphrase, **kwargs)

    @classmethod
    def from_env(cls, **kwargs) -> "CoinbaseProClient":
        """
        Create a client from CBPRO_API_KEY, CBPRO_API_SECRET, CBPRO_API_PASSPHRASE
        and CBPRO_SANDBOX.
        """
        kwargs.setdefault("sandbox", os.getenv("CBPRO_SANDBOX", "false").lower() in ("1", "true", "yes"))
        return cls.from_credentials(Credentials.from_env(), **kwargs)

    @classmethod
    def from_config(cls, config_manager, credentials: Credentials, **kwargs) -> "CoinbaseProClient":
        """Create a client from a loaded ConfigManager."""
        api_config = config_manager.get_api_config()
        kwargs.setdefault("sandbox", api_config["sandbox"])
        kwargs.setdefault("timeout", api_config["timeout"])
        kwargs.setdefault("base_url", api_config["sandbox_url"] if kwargs["sandbox"] else api_config["base_url"])
        kwargs.setdefault("rate_limiter", config_manager.build_rate_limiter())
        return cls.from_credentials(credentials, **kwargs)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "CoinbaseProClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ==================== Request pipeline ====================

    def dispatch(self, request: SignedRequest, endpoint_class: str,
                 timeout: Optional[float] = None) -> requests.Response:
        """
        Send a signed request and classify the response.

        Args:
            request: request produced by the builder
            endpoint_class: rate-limit class of the endpoint
            timeout: request timeout in seconds (client default when None)

        Returns:
            requests.Response: a 2xx response; its body has been read and the
            connection released

        Raises:
            RateLimited: no token available (nothing was sent)
            NetworkError: the transport failed before a response arrived
            APIError: non-2xx response
        """
        path = request.request_path
        self.rate_limiter.acquire(endpoint_class, path=path)

        timeout = self.timeout if timeout is None else timeout
        start_time = time.time()
        try:
            response = self.transport.send(request.prepare(), timeout=timeout)
        except requests.RequestException as e:
            logger.warning(f"Request failed: {request.method} {path}: {type(e).__name__}")
            raise NetworkError(f"{request.method} {path} failed: {e}", path=path) from e

        try:
            # Reading the body here so it is available after close().
            response.content
            elapsed = time.time() - start_time
            logger.debug(f"{request.method} {path} -> {response.status_code}", extra={
                'endpoint_class': endpoint_class,
                'status_code': response.status_code,
                'elapsed_seconds': elapsed,
            })

            if not 200 <= response.status_code < 300:
                error = decode_error(response, path=path)
                logger.warning(f"API error: {request.method} {path}: {error.status_code} {error.message}")
                raise error

            return response
        except requests.RequestException as e:
            raise NetworkError(f"{request.method} {path} failed while reading body: {e}",
                               path=path) from e
        finally:
            response.close()

    def fetch(self, method: str, path: str, endpoint_class: str,
              params: Optional[Dict[str, Any]] = None,
              body: Optional[Union[Dict[str, Any], str]] = None,
              timeout: Optional[float] = None) -> requests.Response:
        """Build, sign and dispatch one request. Retrying means calling this again."""
        request = self.builder.build(method, path, params=params, body=body)
        return self.dispatch(request, endpoint_class, timeout=timeout)

    def paginate(self, path: str, model, endpoint_class: str = "accounts",
                 limit: Optional[int] = None, params: Optional[Dict[str, Any]] = None,
                 direction: str = "after", timeout: Optional[float] = None) -> Paginator:
        """Return a lazy Paginator over every item of a paginated GET endpoint."""
        return Paginator(self, path, model, endpoint_class=endpoint_class, limit=limit,
                         params=params, direction=direction, timeout=timeout)

    # ==================== Account endpoints ====================

    @staticmethod
    def _account_path(account_id: str, suffix: str = "") -> str:
        if not account_id or not isinstance(account_id, str):
            raise ValueError("account_id is required")
        # Quoted here so the signed path is the path requests sends.
        return f"/accounts/{quote(account_id, safe='')}{suffix}"

    def list_accounts(self) -> List[ListAccount]:
        """
        Get the trading accounts of the profile associated with the API key.

        Requires the "view" or "trade" permission. Rate limited at 25 requests
        per second, bursting to 50.
        """
        path = "/accounts"
        response = self.fetch("GET", path, "accounts")
        return decode(response, ListAccount, many=True, path=path)

    def get_account(self, account_id: str) -> Account:
        """
        Get a single account. The API key must belong to the same profile as
        the account.
        """
        path = self._account_path(account_id)
        response = self.fetch("GET", path, "accounts")
        return decode(response, Account, path=path)

    def get_account_history(self, account_id: str, limit: Optional[int] = None) -> Paginator:
        """
        Iterate the ledger (account activity) of an account, latest first.

        Entries from a trade (match, fee) carry order, trade and product ids
        in ``details``.
        """
        path = self._account_path(account_id, "/ledger")
        return self.paginate(path, AccountActivity, limit=limit)

    def get_account_holds(self, account_id: str, limit: Optional[int] = None) -> Paginator:
        """
        Iterate the holds of an account.

        Holds are placed for active orders and pending withdrawals; they shrink
        as orders fill and disappear when an order is canceled or a withdrawal
        completes.
        """
        path = self._account_path(account_id, "/holds")
        return self.paginate(path, AccountHold, limit=limit)

"""
Pytest configuration and fixtures for the Coinbase Pro client test suite.
"""

import json
import os
from collections import deque
from pathlib import Path
from typing import Optional

import pytest
import requests

from cbpro_client.api.client import CoinbaseProClient
from cbpro_client.api.ratelimit import RateLimiter
from cbpro_client.api.transport import Transport


TEST_KEY = "test-api-key"
TEST_SECRET = "c2VjcmV0"  # base64 of b"secret"
TEST_PASSPHRASE = "test-passphrase"
FIXED_TIME = 1700000000

PROJECT_ROOT = Path(__file__).parent.parent


class TrackingResponse(requests.Response):
    """requests.Response that remembers whether it was closed."""

    def __init__(self):
        super().__init__()
        self.closed = False

    def close(self):
        self.closed = True
        super().close()


def make_response(status_code: int = 200, body=None, headers: Optional[dict] = None,
                  raw_body: Optional[bytes] = None) -> TrackingResponse:
    """Build a canned response; ``body`` is JSON-encoded unless ``raw_body`` is given."""
    response = TrackingResponse()
    response.status_code = status_code
    if raw_body is not None:
        response._content = raw_body
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response._content_consumed = True
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    return response


class FakeTransport(Transport):
    """Replays queued responses (or raises queued exceptions) and records requests."""

    def __init__(self, *responses):
        self.responses = deque(responses)
        self.requests = []
        self.timeouts = []
        self.closed = False

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def send(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced clock, also usable as ``sleep``."""

    def __init__(self, now: float = 0.0):
        self.now = now
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def client(fake_transport, fake_clock):
    """Client with a fake transport, a fixed timestamp and a frozen rate-limit clock."""
    return CoinbaseProClient(
        TEST_KEY, TEST_SECRET, TEST_PASSPHRASE,
        transport=fake_transport,
        clock=lambda: FIXED_TIME,
        rate_limiter=RateLimiter(clock=fake_clock),
    )


@pytest.fixture
def sample_accounts():
    return [
        {
            "id": "71452118-efc7-4cc4-8780-a5e22d4baa53",
            "currency": "BTC",
            "balance": "0.0000000000000001",
            "available": "0.0000000000000001",
            "hold": "0.0000000000000000",
            "profile_id": "75da88c5-05bf-4f54-bc85-5c775bd68254",
            "trading_enabled": True,
        },
        {
            "id": "e316cb9a-0808-4fd7-8914-97829c1925de",
            "currency": "USD",
            "balance": "80.2301373066930000",
            "available": "79.2266348066930000",
            "hold": "1.0035025000000000",
            "profile_id": "75da88c5-05bf-4f54-bc85-5c775bd68254",
            "trading_enabled": True,
        },
    ]


def ledger_entry(entry_id: int, amount: str = "0.001", balance: str = "239.669") -> dict:
    return {
        "id": str(entry_id),
        "created_at": "2014-11-07T08:19:27.028459Z",
        "amount": amount,
        "balance": balance,
        "type": "fee",
        "details": {
            "order_id": "d50ec984-77a8-460a-b958-66f114b0de9b",
            "trade_id": str(entry_id),
            "product_id": "BTC-USD",
        },
    }


def hold_entry(hold_id: str, amount: str = "4.23") -> dict:
    return {
        "id": hold_id,
        "account_id": "e0b3f39a-183d-453e-b754-0c13e5bab0b3",
        "created_at": "2014-11-06T10:34:47.123456Z",
        "updated_at": "2014-11-06T10:40:47.123456Z",
        "amount": amount,
        "type": "order",
        "ref": "0a205de4-dd35-4370-a285-fe8fc375a273",
    }


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    test_env = {
        "CBPRO_API_KEY": TEST_KEY,
        "CBPRO_API_SECRET": TEST_SECRET,
        "CBPRO_API_PASSPHRASE": TEST_PASSPHRASE,
        "CREDENTIAL_PASSWORD": "test-password",
        "CBPRO_SANDBOX": None,
        "CBPRO_TIMEOUT": None,
        "CBPRO_RATE_LIMIT_POLICY": None,
    }

    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value

    yield

    for key, value in original_env.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value

"""
Coinbase Pro request signing and credential handling.

Authenticated requests carry four CB-ACCESS-* headers. The signature is a
base64 HMAC-SHA256, keyed by the base64-decoded API secret, over the
concatenation of timestamp, method, request path and body.

Security:
- The secret and passphrase are never logged or put in exception messages
- Credentials can be stored on disk encrypted with Fernet
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urlencode

import requests
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import InvalidCredential


logger = logging.getLogger(__name__)

HEADER_KEY = "CB-ACCESS-KEY"
HEADER_SIGNATURE = "CB-ACCESS-SIGN"
HEADER_TIMESTAMP = "CB-ACCESS-TIMESTAMP"
HEADER_PASSPHRASE = "CB-ACCESS-PASSPHRASE"


def _decode_secret(secret: str) -> bytes:
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError, TypeError):
        # The secret itself must stay out of the message.
        raise InvalidCredential("API secret is not valid base64") from None


def generate_signature(secret: str, timestamp: str, method: str, path: str, body: str = "") -> str:
    """
    Generate the CB-ACCESS-SIGN value for a request.

    Args:
        secret: base64-encoded API secret (must not be logged)
        timestamp: Unix time in seconds, as a string
        method: HTTP method in upper case (e.g. "GET")
        path: request path including any query string (e.g. "/accounts")
        body: request body as sent on the wire, empty string when there is none

    Returns:
        base64-encoded HMAC-SHA256 digest

    Raises:
        InvalidCredential: if the secret cannot be base64-decoded

    Example:
        >>> sig = generate_signature("c2VjcmV0", "1700000000", "GET", "/accounts/abc123")
        >>> len(base64.b64decode(sig)) == 32  # SHA256 digest
        True
    """
    key = _decode_secret(secret)
    message = f"{timestamp}{method}{path}{body or ''}"
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


@dataclass(frozen=True)
class Credentials:
    """API key, base64 secret and passphrase for one Coinbase Pro profile."""

    key: str
    secret: str = field(repr=False)
    passphrase: str = field(repr=False)

    def __post_init__(self):
        if not self.key or not isinstance(self.key, str):
            raise InvalidCredential("API key is missing")
        if not self.secret or not isinstance(self.secret, str):
            raise InvalidCredential("API secret is missing")
        if not self.passphrase or not isinstance(self.passphrase, str):
            raise InvalidCredential("API passphrase is missing")
        _decode_secret(self.secret)

    @classmethod
    def from_env(cls, prefix: str = "CBPRO_API_") -> "Credentials":
        """Read credentials from ``{prefix}KEY``, ``{prefix}SECRET`` and ``{prefix}PASSPHRASE``."""
        return cls(
            key=os.getenv(f"{prefix}KEY", ""),
            secret=os.getenv(f"{prefix}SECRET", ""),
            passphrase=os.getenv(f"{prefix}PASSPHRASE", ""),
        )


@dataclass(frozen=True)
class SignedRequest:
    """
    A request ready for transmission.

    The signature covers exactly ``timestamp + method + request_path + body``.
    Instances are frozen: a different body or path needs a new build, which
    also takes a new timestamp.
    """

    method: str
    base_url: str
    request_path: str
    body: bytes
    timestamp: str
    signature: str
    key: str = field(repr=False)
    passphrase: str = field(repr=False)

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.request_path}"

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            HEADER_KEY: self.key,
            HEADER_SIGNATURE: self.signature,
            HEADER_TIMESTAMP: self.timestamp,
            HEADER_PASSPHRASE: self.passphrase,
        }
        if self.body:
            headers["Content-Type"] = "application/json"
        return headers

    def prepare(self) -> requests.PreparedRequest:
        """Convert into a ``requests.PreparedRequest`` for the transport."""
        return requests.Request(
            method=self.method,
            url=self.url,
            headers=self.headers,
            data=self.body or None,
        ).prepare()


def build_request_path(path: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Append url-encoded query parameters to ``path``, dropping None values."""
    if not params:
        return path
    query = urlencode([(k, v) for k, v in params.items() if v is not None])
    return f"{path}?{query}" if query else path


class RequestBuilder:
    """Builds signed requests for one set of credentials and one base URL."""

    def __init__(self, credentials: Credentials, base_url: str,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            credentials: API credentials
            base_url: REST base URL, without trailing slash
            clock: returns the current Unix time in seconds (defaults to time.time)
        """
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.clock = clock or time.time

    def build(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
              body: Optional[Union[Dict[str, Any], str]] = None) -> SignedRequest:
        """
        Build and sign a request.

        The timestamp is read from the clock exactly once and used both for the
        signature and the CB-ACCESS-TIMESTAMP header.

        Args:
            method: HTTP method
            path: API path (e.g. "/accounts")
            params: optional query parameters, included in the signed path
            body: optional JSON body, as a dict or an already serialised string

        Returns:
            SignedRequest
        """
        method = method.upper()
        request_path = build_request_path(path, params)

        if body is None:
            body_str = ""
        elif isinstance(body, str):
            body_str = body
        else:
            body_str = json.dumps(body)

        timestamp = str(int(self.clock()))
        signature = generate_signature(self.credentials.secret, timestamp, method,
                                       request_path, body_str)

        return SignedRequest(
            method=method,
            base_url=self.base_url,
            request_path=request_path,
            body=body_str.encode("utf-8"),
            timestamp=timestamp,
            signature=signature,
            key=self.credentials.key,
            passphrase=self.credentials.passphrase,
        )


class CredentialManager:
    """Encrypted on-disk storage for API credentials."""

    def __init__(self, password: Optional[str] = None, salt: bytes = b"cbpro_client_salt"):
        """
        Initialize credential manager.

        Args:
            password: Password for encryption. If None, uses CREDENTIAL_PASSWORD.
            salt: PBKDF2 salt
        """
        password = password or os.getenv("CREDENTIAL_PASSWORD")
        if not password:
            raise InvalidCredential("No credential password provided")
        self._cipher = Fernet(self._derive_key(password, salt))

    @staticmethod
    def _derive_key(password: str, salt: bytes) -> bytes:
        """Derive a Fernet key from the password using PBKDF2."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def encrypt_credentials(self, credentials: Credentials) -> Dict[str, str]:
        """Encrypt each credential field separately."""
        return {
            "encrypted_key": self._cipher.encrypt(credentials.key.encode()).decode(),
            "encrypted_secret": self._cipher.encrypt(credentials.secret.encode()).decode(),
            "encrypted_passphrase": self._cipher.encrypt(credentials.passphrase.encode()).decode(),
        }

    def decrypt_credentials(self, encrypted_data: Dict[str, str]) -> Credentials:
        """
        Decrypt credentials produced by ``encrypt_credentials``.

        Raises:
            InvalidCredential: wrong password, tampered data or missing fields
        """
        try:
            return Credentials(
                key=self._cipher.decrypt(encrypted_data["encrypted_key"].encode()).decode(),
                secret=self._cipher.decrypt(encrypted_data["encrypted_secret"].encode()).decode(),
                passphrase=self._cipher.decrypt(encrypted_data["encrypted_passphrase"].encode()).decode(),
            )
        except (InvalidToken, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to decrypt credentials: {type(e).__name__}")
            raise InvalidCredential("Failed to decrypt credentials") from None

    def store(self, credentials: Credentials, storage_path: str = "credentials.json") -> None:
        """Encrypt and write credentials to ``storage_path``."""
        encrypted_data = self.encrypt_credentials(credentials)
        with open(storage_path, "w") as f:
            json.dump(encrypted_data, f)
        logger.info(f"Encrypted credentials stored to {storage_path}")

    def load(self, storage_path: str = "credentials.json") -> Credentials:
        """Read and decrypt credentials from ``storage_path``."""
        try:
            with open(storage_path, "r") as f:
                encrypted_data = json.load(f)
        except (OSError, ValueError) as e:
            raise InvalidCredential(f"Cannot read credentials file {storage_path}: {e}") from e

        credentials = self.decrypt_credentials(encrypted_data)
        logger.info(f"Credentials loaded from {storage_path}")
        return credentials

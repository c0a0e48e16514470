"""Property-based tests for request signing and header construction."""

import base64
import hashlib
import hmac

from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from cbpro_client.api.auth import Credentials, RequestBuilder, generate_signature


@composite
def secrets(draw):
    """Base64-encoded secrets of realistic length."""
    raw = draw(st.binary(min_size=16, max_size=64))
    return base64.b64encode(raw).decode()


@composite
def request_parts(draw):
    """Timestamp, method, request path and body."""
    timestamp = str(draw(st.integers(min_value=1_400_000_000, max_value=2_000_000_000)))
    method = draw(st.sampled_from(["GET", "POST", "DELETE"]))
    segment = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", min_size=1, max_size=12)
    path = "/" + "/".join(draw(st.lists(segment, min_size=1, max_size=4)))
    body = draw(st.one_of(st.just(""), st.text(min_size=1, max_size=80)))
    return timestamp, method, path, body


def reference_signature(secret: str, message: str) -> str:
    digest = hmac.new(base64.b64decode(secret), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


class TestSignatureProperties:

    @given(secret=secrets(), parts=request_parts())
    @settings(max_examples=100)
    def test_signature_matches_hmac_of_concatenation(self, secret, parts):
        timestamp, method, path, body = parts
        assert generate_signature(secret, timestamp, method, path, body) == \
            reference_signature(secret, timestamp + method + path + body)

    @given(secret=secrets(), parts=request_parts())
    @settings(max_examples=50)
    def test_deterministic(self, secret, parts):
        assert generate_signature(secret, *parts) == generate_signature(secret, *parts)

    @given(secret=secrets(), parts=request_parts(), data=st.data())
    @settings(max_examples=100)
    def test_any_changed_component_changes_signature(self, secret, parts, data):
        original = generate_signature(secret, *parts)

        index = data.draw(st.integers(min_value=0, max_value=3), label="component")
        suffix = data.draw(st.text(alphabet="0123456789abcdef", min_size=1, max_size=4), label="suffix")
        changed = list(parts)
        if index == 1:
            changed[1] = "PUT" if parts[1] != "PUT" else "PATCH"
        else:
            changed[index] = parts[index] + suffix

        assert generate_signature(secret, *changed) != original

    @given(secret=secrets(), other=secrets(), parts=request_parts())
    @settings(max_examples=50)
    def test_different_secret_changes_signature(self, secret, other, parts):
        if base64.b64decode(secret) == base64.b64decode(other):
            return
        assert generate_signature(secret, *parts) != generate_signature(other, *parts)

    @given(secret=secrets())
    def test_signature_is_base64_sha256_digest(self, secret):
        signature = generate_signature(secret, "1700000000", "GET", "/accounts")
        assert len(base64.b64decode(signature, validate=True)) == 32


class TestHeaderProperties:

    @given(secret=secrets(), parts=request_parts(),
           now=st.floats(min_value=1_400_000_000, max_value=2_000_000_000))
    @settings(max_examples=100)
    def test_headers_present_and_consistent(self, secret, parts, now):
        _, method, path, body = parts
        credentials = Credentials("key-1", secret, "pass-1")
        request = RequestBuilder(credentials, "https://api.example.com", clock=lambda: now) \
            .build(method, path, body=body or None)
        headers = request.headers

        assert headers["CB-ACCESS-KEY"] == "key-1"
        assert headers["CB-ACCESS-PASSPHRASE"] == "pass-1"
        assert headers["CB-ACCESS-TIMESTAMP"] == str(int(now))
        assert headers["CB-ACCESS-SIGN"] == reference_signature(
            secret, str(int(now)) + method + path + body)
        assert request.body == body.encode("utf-8")

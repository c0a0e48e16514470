"""
Response decoding.

Successful bodies are mapped onto the resource models; failed responses are
mapped onto APIError. JSON numbers are parsed as Decimal so that money
values never pass through float.
"""

import json
from decimal import Decimal
from typing import Any, List, Type, TypeVar, Union

import requests

from ..data.models import Model
from .errors import APIError, DecodeError


M = TypeVar("M", bound=Model)


def _parse_json(raw: bytes) -> Any:
    return json.loads(raw, parse_float=Decimal)


def decode(response: requests.Response, model: Type[M], many: bool = False,
           path: str = "") -> Union[M, List[M]]:
    """
    Decode a 2xx response body into ``model`` (or a list of it).

    Args:
        response: successful response
        model: model class providing ``from_dict``
        many: expect a JSON array of objects
        path: request path, attached to errors for diagnostics

    Returns:
        model instance or list of instances

    Raises:
        DecodeError: body is not JSON or does not match the model
    """
    raw = response.content or b""
    try:
        data = _parse_json(raw)
    except ValueError as e:
        raise DecodeError(f"invalid JSON ({e})", raw=raw, path=path) from e

    try:
        if many:
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            return [model.from_dict(item) for item in data]
        return model.from_dict(data)
    except ValueError as e:
        raise DecodeError(str(e), raw=raw, path=path) from e


def decode_error(response: requests.Response, path: str = "") -> APIError:
    """
    Build an APIError from a non-2xx response.

    The body is parsed as ``{"message": ...}`` when possible, otherwise the
    raw text becomes the message.
    """
    raw = response.content or b""
    message = None
    error_code = None

    try:
        data = _parse_json(raw)
    except ValueError:
        data = None

    if isinstance(data, dict):
        if isinstance(data.get("message"), str):
            message = data["message"]
        code = data.get("error") or data.get("code")
        if code is not None:
            error_code = str(code)

    if not message:
        message = raw.decode("utf-8", errors="replace").strip() or response.reason or \
            f"HTTP {response.status_code}"

    return APIError(message, status_code=response.status_code, error_code=error_code,
                    body=raw, path=path)

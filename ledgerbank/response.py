"""Helpers that build JSON and status-only HTTP responses."""

from __future__ import annotations

import base64
import dataclasses
import json
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from flask import Response


def status_only(status: int) -> Response:
    """A response with a status and no body or content type."""
    response = Response(status=status)
    del response.headers["Content-Type"]
    return response


def _decimal_text(value: Decimal) -> str:
    if not value.is_finite():
        raise ValueError(f"cannot encode {value} as JSON")
    if value.is_zero():
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return _plain(value.value)
    if value is None or isinstance(value, (bool, str, int, float)):
        return value
    if isinstance(value, Decimal):
        return _decimal_text(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.metadata.get("json", field.name): _plain(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, Mapping):
        items = sorted(((str(key), item) for key, item in value.items()), key=lambda pair: pair[0])
        return {key: _plain(item) for key, item in items}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def _marshal(data: Any) -> str:
    text = json.dumps(_plain(data), ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    for char, escape in _ESCAPES.items():
        text = text.replace(char, escape)
    return text


def json_response(status: int, data: Any) -> Response:
    """Encode ``data`` compactly as the JSON body of a response.

    Mappings are written with sorted keys, dataclasses in field order
    (using each field's ``"json"`` metadata as its key), decimals as
    strings. If ``data`` cannot be encoded the body is a plain error text.
    """
    try:
        body = _marshal(data)
    except (TypeError, ValueError):
        body = "Internal Server Error\n"
    return Response(body, status=status, content_type="application/json")


def json_error(status: int, message: str) -> Response:
    """A JSON response of the form {"error": message}."""
    return json_response(status, {"error": message})
"""Decoding and validation of JSON request bodies, and path parameters.

Request models are dataclasses whose fields all have defaults. Field
metadata may carry ``"json"`` (the key in the body; the field name if
absent) and ``"validate"`` (comma separated rules such as
``"required,number"`` or ``"decimal_precision=6"``).
"""

from __future__ import annotations

import dataclasses
import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar

MAX_REQUEST_SIZE = 1 << 20
_UINT64_MAX = (1 << 64) - 1
_DECIMAL_TEXT = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_DIGITS = re.compile(r"[0-9]+")

T = TypeVar("T")

_TYPE_NAMES: dict[str, type] = {
    "int": int,
    "Decimal": Decimal,
    "decimal.Decimal": Decimal,
    "str": str,
    "bool": bool,
}


class BindError(ValueError):
    """A request body could not be bound to its model."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid character {name[0]!r} looking for beginning of value")


def _decode_first_value(body: bytes) -> Any:
    text = body.decode("utf-8", errors="replace").lstrip(" \t\r\n")
    if not text:
        raise ValueError("EOF")
    decoder = json.JSONDecoder(parse_float=Decimal, parse_constant=_reject_constant)
    value, _ = decoder.raw_decode(text)
    return value


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, Decimal)):
        return f"number {value}"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _parse_decimal(text: str) -> Decimal:
    if not _DECIMAL_TEXT.fullmatch(text):
        raise ValueError(f"can't convert {text} to decimal")
    return Decimal(text)


def _resolve_type(annotation: Any) -> Any:
    if isinstance(annotation, str):
        return _TYPE_NAMES.get(annotation.strip())
    return annotation


def _convert(value: Any, target: Any, where: str) -> Any:
    def mismatch(type_name: str) -> BindError:
        return BindError(
            f"invalid JSON: json: cannot unmarshal {_json_kind(value)} "
            f"into field {where} of type {type_name}"
        )

    if target is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise mismatch("uint64")
        if not 0 <= value <= _UINT64_MAX:
            raise mismatch("uint64")
        return value
    if target is Decimal:
        if isinstance(value, Decimal):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return Decimal(value)
        raw = value if isinstance(value, str) else json.dumps(value, default=str)
        try:
            return _parse_decimal(raw)
        except (ValueError, InvalidOperation) as exc:
            raise BindError(f"invalid JSON: error decoding string '{raw}': {exc}") from exc
    if target is str:
        if not isinstance(value, str):
            raise mismatch("string")
        return value
    if target is bool:
        if not isinstance(value, bool):
            raise mismatch("bool")
        return value
    return value


def _populate(model: type[T], payload: Any) -> T:
    if payload is None:
        return model()
    if not isinstance(payload, dict):
        raise BindError(
            f"invalid JSON: json: cannot unmarshal {_json_kind(payload)} "
            f"into value of type {model.__name__}"
        )
    fields = [f for f in dataclasses.fields(model) if f.init]
    by_key = {f.metadata.get("json", f.name): f for f in fields}
    by_folded = {key.casefold(): f for key, f in reversed(list(by_key.items()))}
    values: dict[str, Any] = {}
    for key, raw in payload.items():
        field = by_key.get(key) or by_folded.get(key.casefold())
        if field is None or raw is None:
            continue
        where = f"{model.__name__}.{field.metadata.get('json', field.name)}"
        values[field.name] = _convert(raw, _resolve_type(field.type), where)
    return model(**values)


def bind_json(content_type: str | None, body: bytes | str, model: type[T]) -> T:
    """Decode ``body`` into an instance of ``model`` and validate it.

    Raises BindError with a message fit for the client.
    """
    if "application/json" not in (content_type or ""):
        raise BindError("content-type must be application/json")
    if isinstance(body, str):
        body = body.encode("utf-8")
    if len(body) > MAX_REQUEST_SIZE:
        raise BindError("invalid JSON: http: request body too large")
    try:
        payload = _decode_first_value(body)
    except ValueError as exc:
        raise BindError(f"invalid JSON: {exc}") from exc
    instance = _populate(model, payload)
    validate_struct(instance)
    return instance


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return bool(value)


def _is_number(value: Any, _param: str) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return bool(_DIGITS.fullmatch(value))
    return False


def _measure(value: Any) -> Any:
    if isinstance(value, (str, list, tuple, dict)):
        return len(value)
    return value


def _bound(param: str) -> Decimal:
    try:
        return Decimal(param)
    except InvalidOperation as exc:
        raise ValueError(f"bad parameter {param!r} for validation rule") from exc


def _compare(test: Callable[[Any, Decimal], bool]) -> Callable[[Any, str], bool]:
    return lambda value, param: test(_measure(value), _bound(param))


def _decimal_rule(test: Callable[[Decimal, str], bool]) -> Callable[[Any, str], bool]:
    return lambda value, param: isinstance(value, Decimal) and test(value, param)


def _decimal_bound(test: Callable[[Decimal, Decimal], bool]) -> Callable[[Decimal, str], bool]:
    def check(value: Decimal, param: str) -> bool:
        try:
            limit = _parse_decimal(param)
        except (ValueError, InvalidOperation):
            return False
        return test(value, limit)

    return check


def _within_precision(value: Decimal, param: str) -> bool:
    try:
        precision = int(param)
    except ValueError:
        return False
    exponent = value.as_tuple().exponent
    places = max(-exponent, 0) if isinstance(exponent, int) else 0
    return places <= precision


_RULES: dict[str, Callable[[Any, str], bool]] = {
    "required": lambda value, _param: _has_value(value),
    "number": _is_number,
    "min": _compare(lambda size, limit: size >= limit),
    "max": _compare(lambda size, limit: size <= limit),
    "gt": _compare(lambda size, limit: size > limit),
    "gte": _compare(lambda size, limit: size >= limit),
    "lt": _compare(lambda size, limit: size < limit),
    "lte": _compare(lambda size, limit: size <= limit),
    "decimal_required": _decimal_rule(lambda value, _param: not value.is_zero()),
    "decimal_positive": _decimal_rule(lambda value, _param: value > 0),
    "decimal_non_negative": _decimal_rule(lambda value, _param: not value < 0),
    "decimal_min": _decimal_rule(_decimal_bound(lambda value, limit: value >= limit)),
    "decimal_max": _decimal_rule(_decimal_bound(lambda value, limit: value <= limit)),
    "decimal_precision": _decimal_rule(_within_precision),
}

_MESSAGES = {
    "required": "{name} is required",
    "number": "{name} must be a valid number",
    "decimal_required": "{name} is required",
    "decimal_positive": "{name} must be greater than 0",
    "decimal_non_negative": "{name} must be greater than or equal to 0",
    "decimal_min": "{name} must be at least {param}",
    "decimal_max": "{name} must be at most {param}",
    "decimal_precision": "{name} has too many decimal places (max {param})",
    "min": "{name} must be at least {param}",
    "max": "{name} must be at most {param}",
    "gt": "{name} must be greater than {param}",
    "gte": "{name} must be greater than or equal to {param}",
    "lt": "{name} must be less than {param}",
    "lte": "{name} must be less than or equal to {param}",
}


def _parse_rules(rules: str) -> list[tuple[str, str]]:
    parsed = []
    for rule in rules.split(","):
        tag, _, param = rule.strip().partition("=")
        if tag:
            parsed.append((tag, param))
    return parsed


def validate_struct(instance: Any) -> None:
    """Check the ``validate`` rules of a dataclass instance.

    Raises BindError describing the first failing rule, checking fields in
    order and each field's rules in order.
    """
    for field in dataclasses.fields(instance):
        rules = field.metadata.get("validate")
        if not rules:
            continue
        value = getattr(instance, field.name)
        for tag, param in _parse_rules(rules):
            check = _RULES.get(tag)
            if check is None:
                raise ValueError(f"undefined validation function '{tag}' on field '{field.name}'")
            # "required" does not apply to decimal values; the decimal rules cover them.
            if tag == "required" and isinstance(value, Decimal):
                continue
            if not check(value, param):
                template = _MESSAGES.get(tag, "{name} is invalid")
                raise BindError(template.format(name=field_display_name(field.name), param=param))


_DISPLAY_NAMES = {
    "AccountID": "account id",
    "InitialBalance": "initial balance",
    "Balance": "balance",
    "Amount": "amount",
}


def field_display_name(field_name: str) -> str:
    """Turn a field name into lower-case words for error messages."""
    if field_name in _DISPLAY_NAMES:
        return _DISPLAY_NAMES[field_name]
    if "_" in field_name:
        return field_name.replace("_", " ").lower()
    return "".join(
        f" {char.lower()}" if index and "A" <= char <= "Z" else char.lower()
        for index, char in enumerate(field_name)
    )


def parse_uint64(value: str) -> int:
    """Parse a base-10 unsigned 64-bit integer; raise ValueError otherwise."""
    if not _DIGITS.fullmatch(value):
        raise ValueError(f'strconv.ParseUint: parsing "{value}": invalid syntax')
    number = int(value)
    if number > _UINT64_MAX:
        raise ValueError(f'strconv.ParseUint: parsing "{value}": value out of range')
    return number
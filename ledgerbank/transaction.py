"""Transfers of funds between accounts."""

from __future__ import annotations

from typing import Any

from .entity import (
    CreateTransferFundsParams,
    CreateTransferFundsResult,
    DataNotFoundError,
    InsufficientFundsError,
    ValidationError,
)
from .logger import Logger
from .request import parse_uint64
from .store import Queries

_COMPOSITE_FIELDS = 3
_BOOLEAN_TRUE = "t"
_NULL_VALUE = "<NULL>"
_QUOTE = '"'
_ESCAPED_QUOTE = '\\"'


def _as_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    if isinstance(result, (bytes, bytearray)):
        return bytes(result).decode("utf-8", errors="replace")
    raise ValueError(f"expected string or bytes result, got {type(result).__name__}")


def _composite_content(text: str) -> str:
    if not (text.startswith("(") and text.endswith(")")) or len(text) < 2:
        raise ValueError(f"invalid composite type format, expected parentheses: {text}")
    return text[1:-1]


def _transfer_id(field: str) -> int:
    text = field.strip()
    if text in ("", _NULL_VALUE):
        return 0
    try:
        return parse_uint64(text)
    except ValueError as exc:
        raise ValueError(f"invalid transfer_id: {text}") from exc


def _error_message(field: str) -> str:
    message = field.strip()
    if len(message) >= 2 and message.startswith(_QUOTE) and message.endswith(_QUOTE):
        message = message[1:-1].replace(_ESCAPED_QUOTE, _QUOTE)
    return message


def parse_transfer_funds_result(result: Any) -> CreateTransferFundsResult:
    """Parse a ``(transfer_id,success,error_message)`` record text.

    Accepts text or bytes; raises ValueError for anything malformed.
    """
    content = _composite_content(_as_text(result))
    fields = content.split(",")
    if len(fields) != _COMPOSITE_FIELDS:
        raise ValueError(
            f"invalid composite type content, expected {_COMPOSITE_FIELDS} fields "
            f"got {len(fields)}: {content}"
        )
    id_field, success_field, message_field = fields
    return CreateTransferFundsResult(
        transfer_id=_transfer_id(id_field),
        success=success_field.strip() == _BOOLEAN_TRUE,
        error_message=_error_message(message_field),
    )


def map_transfer_error(error_message: str) -> Exception:
    """Return the domain error that matches a failed transfer's message."""
    normalized = error_message.lower()
    if "insufficient funds" in normalized:
        return InsufficientFundsError()
    if "account does not exist" in normalized:
        return DataNotFoundError()
    if (
        "transfer amount must be positive" in normalized
        or "cannot transfer to the same account" in normalized
    ):
        return ValidationError(error_message)
    return RuntimeError(f"transfer funds failed: {error_message}")


class TransactionDomain:
    """Fund transfers on top of the store."""

    def __init__(self, queries: Queries | None, logger: Logger | None) -> None:
        if queries is None:
            raise ValueError("queries is None")
        if logger is None:
            raise ValueError("logger is None")
        self._queries = queries
        self._logger = logger.with_field("domain", "transaction")

    def create_transfer_funds(
        self, param: CreateTransferFundsParams
    ) -> CreateTransferFundsResult:
        """Move funds atomically and return the successful result.

        Raises InsufficientFundsError, DataNotFoundError or ValidationError
        for the matching refusals, RuntimeError for anything else.
        """
        try:
            raw = self._queries.create_transfer_transaction(
                param.source_account_id, param.destination_account_id, str(param.amount)
            )
        except Exception as exc:
            self._logger.error("param=%+v, error=%v", param, exc)
            raise RuntimeError(f"failed to create transfer funds: {exc}") from exc

        if raw is None:
            self._logger.error("param=%+v, invalid transfer funds result", param)
            raise RuntimeError("invalid transfer funds result")

        try:
            result = parse_transfer_funds_result(raw)
        except ValueError as exc:
            self._logger.error("param=%+v, failed to parse result: %v", param, exc)
            raise RuntimeError(f"failed to parse transfer funds result: {exc}") from exc

        if not result.success:
            self._logger.error("param=%+v, transfer funds failed", param)
            raise map_transfer_error(result.error_message)

        return result
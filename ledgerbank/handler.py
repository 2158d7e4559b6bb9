"""HTTP handlers for the customer-facing account and transfer endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import Flask, Response, request

from .account import AccountDomain
from .entity import (
    CreateAccount,
    CreateTransferFundsParams,
    DataNotFoundError,
    InsufficientFundsError,
    NoRowsError,
    ValidationError,
)
from .logger import Logger
from .request import BindError, bind_json, parse_uint64
from .response import json_error, json_response, status_only
from .transaction import TransactionDomain

INTERNAL_ERROR_MESSAGE = "it's not you, it's us. please contact support"


@dataclass
class CreateAccountRequest:
    account_id: int = field(
        default=0, metadata={"json": "account_id", "validate": "required,number"}
    )
    initial_balance: Decimal = field(
        default=Decimal(0),
        metadata={
            "json": "initial_balance",
            "validate": "decimal_required,decimal_positive,decimal_precision=6",
        },
    )


@dataclass(frozen=True)
class GetAccountBalanceResponse:
    account_id: int = field(metadata={"json": "account_id"})
    balance: Decimal = field(metadata={"json": "balance"})


@dataclass
class CreateTransferFundsRequest:
    source_account_id: int = field(
        default=0, metadata={"json": "source_account_id", "validate": "required,number"}
    )
    destination_account_id: int = field(
        default=0, metadata={"json": "destination_account_id", "validate": "required,number"}
    )
    amount: Decimal = field(
        default=Decimal(0),
        metadata={
            "json": "amount",
            "validate": "required,decimal_required,decimal_positive,decimal_precision=6",
        },
    )


class Handler:
    """Request handlers for customers, backed by the account and transfer domains."""

    def __init__(
        self,
        account_domain: AccountDomain | None,
        transaction_domain: TransactionDomain | None,
        logger: Logger | None,
    ) -> None:
        if account_domain is None:
            raise ValueError("account domain is None")
        if transaction_domain is None:
            raise ValueError("transaction domain is None")
        if logger is None:
            raise ValueError("logger is None")
        self._account_domain = account_domain
        self._transaction_domain = transaction_domain
        self._logger = logger.with_field("handler", "customer")

    def create_account(self) -> Response:
        """POST /accounts: open an account with its initial balance."""
        try:
            req = bind_json(request.content_type, request.get_data(), CreateAccountRequest)
        except BindError as exc:
            return json_error(400, str(exc))

        account = CreateAccount(account_id=req.account_id, initial_balance=req.initial_balance)
        try:
            self._account_domain.create_account(account)
        except ValidationError as exc:
            return json_error(400, str(exc))
        except Exception as exc:
            self._logger.error("failed to create account: %v", exc)
            return json_error(500, INTERNAL_ERROR_MESSAGE)

        return status_only(201)

    def get_account_balance(self, account_id: str) -> Response:
        """GET /accounts/<account_id>: report the account's current balance."""
        try:
            parsed_id = parse_uint64(account_id)
        except ValueError:
            return json_error(400, "invalid account id")

        try:
            balance = self._account_domain.get_account_balance(parsed_id)
        except NoRowsError:
            return json_error(400, "invalid account")
        except Exception as exc:
            self._logger.error("failed to get account balance: %v", exc)
            return json_error(500, INTERNAL_ERROR_MESSAGE)

        return json_response(200, GetAccountBalanceResponse(account_id=parsed_id, balance=balance))

    def create_transfer_funds(self) -> Response:
        """POST /transactions: move funds from one account to another."""
        try:
            req = bind_json(request.content_type, request.get_data(), CreateTransferFundsRequest)
        except BindError:
            return json_error(400, "invalid request")

        params = CreateTransferFundsParams(
            source_account_id=req.source_account_id,
            destination_account_id=req.destination_account_id,
            amount=req.amount,
        )
        try:
            self._transaction_domain.create_transfer_funds(params)
        except InsufficientFundsError:
            return json_error(400, "your account has insufficient funds")
        except DataNotFoundError:
            return json_error(400, "invalid account")
        except ValidationError as exc:
            return json_error(400, str(exc))
        except Exception as exc:
            self._logger.error("failed to create transfer funds: %v", exc)
            return json_error(500, INTERNAL_ERROR_MESSAGE)

        return status_only(200)

    def register_routes(self, app: Flask) -> Flask:
        """Attach the customer endpoints to ``app`` and return it."""
        app.add_url_rule(
            "/accounts", "create_account", self.create_account, methods=["POST"]
        )
        app.add_url_rule(
            "/accounts/<account_id>",
            "get_account_balance",
            self.get_account_balance,
            methods=["GET"],
        )
        app.add_url_rule(
            "/transactions",
            "create_transfer_funds",
            self.create_transfer_funds,
            methods=["POST"],
        )
        return app
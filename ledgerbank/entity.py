"""Domain records and errors for accounts, transfers and transactions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class BankError(Exception):
    """Base class for domain errors; an optional detail follows the message."""

    message = "bank error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


class DataNotFoundError(BankError):
    """The requested data does not exist."""

    message = "data not found"


class ValidationError(BankError):
    """Input failed a domain rule."""

    message = "validation error"


class NoRowsError(BankError):
    """A lookup matched no rows."""

    message = "no rows found"


class InsufficientFundsError(BankError):
    """The source account cannot cover the amount."""

    message = "insufficient funds"


class AccountType(str, Enum):
    SAVINGS = "SAVINGS"
    CREDIT = "CREDIT"


class CurrencyCode(str, Enum):
    USD = "USD"
    EUR = "EUR"


class TrxType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


@dataclass
class Model:
    """Fields shared by every stored record."""

    id: int = 0
    created_at: datetime | None = None


@dataclass
class ModelWithUpdatedAt(Model):
    updated_at: datetime | None = None


@dataclass
class Account(ModelWithUpdatedAt):
    """A bank account."""


@dataclass
class CreateAccount:
    """A request to open an account with an initial balance."""

    account_id: int = 0
    initial_balance: Decimal = Decimal(0)

    def validate(self) -> None:
        """Raise ValidationError listing every rule the request breaks."""
        problems = []
        if self.account_id == 0:
            problems.append("account id is required")
        if self.initial_balance.is_zero():
            problems.append("initial balance is required")
        if self.initial_balance < 0:
            problems.append("initial balance must be greater than 0")
        if problems:
            raise ValidationError(", ".join(problems))


@dataclass
class AccountBalanceSnapshot(Model):
    account_id: int = 0
    balance: Decimal = Decimal(0)
    last_transaction_id: int = 0


@dataclass
class Transaction(Model):
    account_id: int = 0
    transfer_id: int | None = None
    amount: Decimal = Decimal(0)
    trx_type: TrxType | None = None


@dataclass
class Transfer(Model):
    from_account_id: int = 0
    to_account_id: int = 0


@dataclass(frozen=True)
class CreateTransferFundsParams:
    source_account_id: int
    destination_account_id: int
    amount: Decimal


@dataclass(frozen=True)
class CreateTransferFundsResult:
    transfer_id: int = 0
    success: bool = False
    error_message: str = ""
"""SQLite storage for accounts, transfers and ledger transactions."""

from __future__ import annotations

import re
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from .entity import NoRowsError, TrxType

_SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS transfers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    from_account_id INTEGER NOT NULL REFERENCES accounts (id),
    to_account_id INTEGER NOT NULL REFERENCES accounts (id),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL REFERENCES accounts (id),
    transfer_id INTEGER REFERENCES transfers (id),
    amount TEXT NOT NULL,
    trx_type TEXT NOT NULL CHECK (trx_type IN ('CREDIT', 'DEBIT')),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS transactions_account_idx ON transactions (account_id, id);
CREATE TABLE IF NOT EXISTS account_balance_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL REFERENCES accounts (id),
    balance TEXT NOT NULL,
    last_transaction_id INTEGER NOT NULL REFERENCES transactions (id),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS snapshots_account_idx
    ON account_balance_snapshots (account_id, last_transaction_id);
"""

TRANSFER_COMPLETED = "Transfer completed successfully"
_AMOUNT_NOT_POSITIVE = "Transfer amount must be positive"
_SAME_ACCOUNT = "Cannot transfer to the same account"
_SOURCE_MISSING = "Source account does not exist"
_DESTINATION_MISSING = "Destination account does not exist"
_INSUFFICIENT = "Insufficient funds"

_NEEDS_QUOTES = re.compile(r'[\s"\\(),]')


class _Connection(sqlite3.Connection):
    """A connection carrying the lock that serialises its transactions."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.write_lock = threading.RLock()


def connect(name: str = ":memory:") -> sqlite3.Connection:
    """Open the database ``name`` and check that it answers."""
    conn = sqlite3.connect(
        name, factory=_Connection, check_same_thread=False, isolation_level=None
    )
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("SELECT 1").fetchone()
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create the tables and indexes if they do not exist yet."""
    conn.executescript(_SCHEMA)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(sep=" ", timespec="microseconds")


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _amount(value: Any) -> Decimal:
    try:
        amount = _to_decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f'invalid input syntax for type numeric: "{value}"') from exc
    if not amount.is_finite():
        raise ValueError(f'invalid input syntax for type numeric: "{value}"')
    return amount


def _quote(text: str) -> str:
    if text and not _NEEDS_QUOTES.search(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '""')
    return f'"{escaped}"'


def _composite(transfer_id: int | None, success: bool, message: str) -> str:
    fields = ["" if transfer_id is None else str(transfer_id), "t" if success else "f", _quote(message)]
    return "(" + ",".join(fields) + ")"


@dataclass(frozen=True)
class AccountRow:
    id: int
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class TransactionRow:
    id: int
    account_id: int
    transfer_id: int | None
    amount: Decimal
    trx_type: TrxType
    created_at: datetime | None


@dataclass(frozen=True)
class TransferRow:
    id: int
    from_account_id: int
    to_account_id: int
    created_at: datetime | None


@dataclass(frozen=True)
class AccountBalanceSnapshotRow:
    id: int
    account_id: int
    balance: Decimal
    last_transaction_id: int
    created_at: datetime | None


class Queries:
    """The statements the service runs against its database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = getattr(conn, "write_lock", None) or threading.RLock()

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed statements atomically; roll back if anything raises.

        Inside an open transaction this joins it instead of starting another.
        """
        with self._lock:
            if self._conn.in_transaction:
                yield self
                return
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self
            except BaseException:
                self._conn.rollback()
                raise
            self._conn.commit()

    def check_account_exists(self, account_id: int) -> bool:
        rows = self._query("SELECT EXISTS (SELECT 1 FROM accounts WHERE id = ?)", (account_id,))
        return bool(rows[0][0])

    def create_account(self, account_id: int) -> AccountRow:
        """Insert an account with the given id and return it."""
        stamp = _now()
        with self.transaction():
            self._conn.execute(
                "INSERT INTO accounts (id, created_at, updated_at) VALUES (?, ?, ?)",
                (account_id, stamp, stamp),
            )
            return self.get_account_by_id(account_id)

    def get_account_by_id(self, account_id: int) -> AccountRow:
        """Return the account; raise NoRowsError if there is none."""
        rows = self._query(
            "SELECT id, created_at, updated_at FROM accounts WHERE id = ?", (account_id,)
        )
        if not rows:
            raise NoRowsError()
        row_id, created_at, updated_at = rows[0]
        return AccountRow(row_id, _parse_time(created_at), _parse_time(updated_at))

    def _balance(self, account_id: int) -> Decimal:
        snapshot = self._query(
            "SELECT balance, last_transaction_id FROM account_balance_snapshots"
            " WHERE account_id = ? ORDER BY last_transaction_id DESC, id DESC LIMIT 1",
            (account_id,),
        )
        if snapshot:
            balance, after = _to_decimal(snapshot[0][0]), snapshot[0][1]
        else:
            balance, after = Decimal(0), 0
        movements = self._query(
            "SELECT amount, trx_type FROM transactions WHERE account_id = ? AND id > ? ORDER BY id",
            (account_id, after),
        )
        for amount, kind in movements:
            value = _to_decimal(amount)
            balance += value if kind == TrxType.CREDIT.value else -value
        return balance

    def get_account_balance(self, account_id: int, lock_for_update: bool = False) -> Decimal:
        """Latest snapshot plus every later credit minus every later debit.

        Raises NoRowsError if the account does not exist. With
        ``lock_for_update`` the read holds the write lock in a transaction.
        """
        if lock_for_update:
            with self.transaction():
                return self.get_account_balance(account_id)
        with self._lock:
            if not self.check_account_exists(account_id):
                raise NoRowsError()
            return self._balance(account_id)

    def _insert_transaction(
        self, account_id: int, transfer_id: int | None, amount: Any, kind: TrxType
    ) -> TransactionRow:
        value = _amount(amount)
        with self.transaction():
            cursor = self._conn.execute(
                "INSERT INTO transactions (account_id, transfer_id, amount, trx_type, created_at)"
                " VALUES (?, ?, ?, ?, ?)",
                (account_id, transfer_id, str(value), kind.value, _now()),
            )
            row = self._conn.execute(
                "SELECT id, account_id, transfer_id, amount, trx_type, created_at"
                " FROM transactions WHERE id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        row_id, row_account, row_transfer, row_amount, row_kind, created_at = row
        return TransactionRow(
            row_id, row_account, row_transfer, _to_decimal(row_amount), TrxType(row_kind),
            _parse_time(created_at),
        )

    def create_credit_transaction(
        self, account_id: int, transfer_id: int | None, amount: Any
    ) -> TransactionRow:
        return self._insert_transaction(account_id, transfer_id, amount, TrxType.CREDIT)

    def create_debit_transaction(
        self, account_id: int, transfer_id: int | None, amount: Any
    ) -> TransactionRow:
        return self._insert_transaction(account_id, transfer_id, amount, TrxType.DEBIT)

    def create_transfer_transaction(
        self, from_account_id: int, to_account_id: int, amount: Any
    ) -> str:
        """Move ``amount`` between accounts atomically.

        Returns a composite record text ``(transfer_id,success,message)``;
        on failure the transfer id is empty and success is ``f``.
        """
        value = _amount(amount)
        with self.transaction():
            if value <= 0:
                return _composite(None, False, _AMOUNT_NOT_POSITIVE)
            if from_account_id == to_account_id:
                return _composite(None, False, _SAME_ACCOUNT)
            if not self.check_account_exists(from_account_id):
                return _composite(None, False, _SOURCE_MISSING)
            if not self.check_account_exists(to_account_id):
                return _composite(None, False, _DESTINATION_MISSING)
            if self._balance(from_account_id) < value:
                return _composite(None, False, _INSUFFICIENT)
            cursor = self._conn.execute(
                "INSERT INTO transfers (from_account_id, to_account_id, created_at) VALUES (?, ?, ?)",
                (from_account_id, to_account_id, _now()),
            )
            transfer_id = cursor.lastrowid
            self.create_debit_transaction(from_account_id, transfer_id, value)
            self.create_credit_transaction(to_account_id, transfer_id, value)
        return _composite(transfer_id, True, TRANSFER_COMPLETED)
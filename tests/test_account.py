import io
import json
from decimal import Decimal

import pytest

from ledgerbank.account import AccountDomain
from ledgerbank.entity import CreateAccount, NoRowsError, ValidationError
from ledgerbank.logger import new_logger
from ledgerbank.store import Queries, connect, init_schema


@pytest.fixture
def env():
    conn = connect()
    init_schema(conn)
    queries = Queries(conn)
    stream = io.StringIO()
    domain = AccountDomain(queries, new_logger("debug", stream))
    yield conn, queries, domain, stream
    conn.close()


def test_requires_queries():
    with pytest.raises(ValueError):
        AccountDomain(None, new_logger("debug", io.StringIO()))


def test_requires_logger(env):
    _, queries, _, _ = env
    with pytest.raises(ValueError):
        AccountDomain(queries, None)


def test_create_account_stores_account_and_credit(env):
    conn, queries, domain, _ = env
    domain.create_account(CreateAccount(account_id=123, initial_balance=Decimal("100")))
    assert queries.check_account_exists(123) is True
    rows = conn.execute(
        "SELECT amount, trx_type, transfer_id FROM transactions WHERE account_id = 123"
    ).fetchall()
    assert len(rows) == 1
    amount, kind, transfer_id = rows[0]
    assert Decimal(amount) == Decimal("100")
    assert kind == "CREDIT"
    assert transfer_id is None


def test_create_account_validation_error_stores_nothing(env):
    conn, queries, domain, _ = env
    with pytest.raises(ValidationError) as info:
        domain.create_account(CreateAccount(account_id=123, initial_balance=Decimal("-100")))
    assert str(info.value) == "validation error: initial balance must be greater than 0"
    assert queries.check_account_exists(123) is False
    assert conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0] == 0


def test_create_account_missing_id(env):
    _, _, domain, _ = env
    with pytest.raises(ValidationError) as info:
        domain.create_account(CreateAccount(account_id=0, initial_balance=Decimal("10")))
    assert "account id is required" in str(info.value)


def test_duplicate_account_fails_and_logs(env):
    conn, queries, domain, stream = env
    queries.create_account(7)
    with pytest.raises(RuntimeError) as info:
        domain.create_account(CreateAccount(account_id=7, initial_balance=Decimal("5")))
    assert str(info.value).startswith("failed to create account")
    assert conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0] == 0
    records = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert records[-1]["level"] == "error"
    assert records[-1]["domain"] == "account"


def test_balance_of_new_account_equals_initial(env):
    _, _, domain, _ = env
    initial = Decimal("250.51234")
    domain.create_account(CreateAccount(account_id=9, initial_balance=initial))
    assert domain.get_account_balance(9) == initial


def test_balance_reflects_later_debit(env):
    _, queries, domain, _ = env
    initial = Decimal("100")
    debit = Decimal("30.5")
    domain.create_account(CreateAccount(account_id=11, initial_balance=initial))
    queries.create_debit_transaction(11, None, debit)
    assert domain.get_account_balance(11) == initial - debit


def test_balance_of_missing_account(env):
    _, _, domain, _ = env
    with pytest.raises(NoRowsError):
        domain.get_account_balance(999)
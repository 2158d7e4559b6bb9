from dataclasses import dataclass, field
from decimal import Decimal

import pytest

from ledgerbank.request import (
    BindError,
    bind_json,
    field_display_name,
    parse_uint64,
    validate_struct,
)

JSON = "application/json"


@dataclass
class AccountBody:
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


@dataclass
class CountBody:
    count: int = field(default=0, metadata={"validate": "gte=5"})


@dataclass
class OddBody:
    count: int = field(default=0, metadata={"validate": "shiny"})


def test_binds_valid_body():
    body = '{"account_id": 123, "initial_balance": "100"}'
    req = bind_json(JSON, body, AccountBody)
    assert req.account_id == 123
    assert req.initial_balance == Decimal("100")


def test_content_type_with_charset_is_accepted():
    req = bind_json(JSON + "; charset=utf-8", b'{"account_id": 1, "initial_balance": 100.5}', AccountBody)
    assert req.initial_balance == Decimal("100.5")


def test_wrong_content_type():
    with pytest.raises(BindError, match="content-type must be application/json"):
        bind_json("text/plain", "{}", AccountBody)


@pytest.mark.parametrize(
    "body, message",
    [
        ('{"initial_balance": "100.12345"}', "account id is required"),
        ('{"account_id": 123}', "initial balance is required"),
        ('{"account_id": 123, "initial_balance": "-100"}', "initial balance must be greater than 0"),
    ],
)
def test_validation_messages(body, message):
    with pytest.raises(BindError) as info:
        bind_json(JSON, body, AccountBody)
    assert str(info.value) == message


def test_too_many_decimal_places():
    with pytest.raises(BindError, match="too many decimal places"):
        bind_json(JSON, '{"account_id": 100, "initial_balance": "50.1234567"}', AccountBody)


@pytest.mark.parametrize(
    "body",
    [
        '{"account_id": 123, "initial_balance": "invalid"}',
        '{"account_id": "invalid", "initial_balance": "1"}',
        '{"account_id": -1, "initial_balance": "1"}',
        '{"account_id": 1.5, "initial_balance": "1"}',
        '[1, 2]',
        '{"account_id": ',
        "",
    ],
)
def test_malformed_bodies(body):
    with pytest.raises(BindError, match="^invalid JSON"):
        bind_json(JSON, body, AccountBody)


def test_oversized_body():
    body = b'{"account_id": 1, "initial_balance": "1", "pad": "' + b"x" * (1 << 20) + b'"}'
    with pytest.raises(BindError, match="too large"):
        bind_json(JSON, body, AccountBody)


def test_keys_match_case_insensitively():
    req = bind_json(JSON, '{"ACCOUNT_ID": 9, "initial_balance": "2"}', AccountBody)
    assert req.account_id == 9


def test_unknown_keys_are_ignored():
    req = bind_json(JSON, '{"account_id": 4, "initial_balance": "3", "extra": true}', AccountBody)
    assert (req.account_id, req.initial_balance) == (4, Decimal("3"))


def test_validate_struct_comparison_rule():
    with pytest.raises(BindError, match="must be greater than or equal to"):
        validate_struct(CountBody(count=3))
    validated = CountBody(count=7)
    validate_struct(validated)
    assert validated.count == 7


def test_unknown_rule_is_an_error():
    with pytest.raises(ValueError, match="undefined"):
        validate_struct(OddBody(count=1))


@pytest.mark.parametrize(
    "name, shown",
    [
        ("AccountID", "account id"),
        ("InitialBalance", "initial balance"),
        ("Amount", "amount"),
        ("SourceAccountID", "source account i d"),
        ("destination_account_id", "destination account id"),
    ],
)
def test_field_display_name(name, shown):
    assert field_display_name(name) == shown


def test_parse_uint64_accepts_digits():
    assert parse_uint64("123") == 123


@pytest.mark.parametrize("text", ["abc", "-123", "", "+5", "18446744073709551616"])
def test_parse_uint64_rejects(text):
    with pytest.raises(ValueError):
        parse_uint64(text)
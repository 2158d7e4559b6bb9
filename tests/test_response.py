from dataclasses import dataclass, field
from decimal import Decimal

from ledgerbank.response import json_error, json_response, status_only


@dataclass
class Balance:
    account_id: int = field(default=0, metadata={"json": "account_id"})
    balance: Decimal = field(default=Decimal(0), metadata={"json": "balance"})


def test_json_error_body_and_headers():
    response = json_error(400, "invalid account id")
    assert response.status_code == 400
    assert response.headers["Content-Type"] == "application/json"
    assert response.get_data(as_text=True) == '{"error":"invalid account id"}'


def test_decimal_is_encoded_as_trimmed_string():
    response = json_response(200, {"account_id": 123, "balance": Decimal("250.512340")})
    assert response.get_data(as_text=True) == '{"account_id":123,"balance":"250.51234"}'


def test_zero_decimal_is_zero():
    response = json_response(200, Balance(account_id=456, balance=Decimal("0.000000")))
    assert response.get_data(as_text=True) == '{"account_id":456,"balance":"0"}'


def test_dataclass_keeps_field_order():
    response = json_response(201, Balance(account_id=1, balance=Decimal("100")))
    assert response.status_code == 201
    assert response.get_data(as_text=True) == '{"account_id":1,"balance":"100"}'


def test_mapping_keys_are_sorted():
    response = json_response(200, {"b": 2, "a": 1})
    assert response.get_data(as_text=True) == '{"a":1,"b":2}'


def test_html_characters_are_escaped():
    response = json_error(400, "<a&b>")
    assert response.get_data(as_text=True) == '{"error":"\\u003ca\\u0026b\\u003e"}'


def test_unencodable_data_gives_error_text():
    response = json_response(200, {"value": object()})
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "Internal Server Error\n"


def test_status_only_has_no_body():
    response = status_only(201)
    assert response.status_code == 201
    assert response.get_data() == b""
    assert "Content-Type" not in response.headers
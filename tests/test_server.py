import io

import pytest

from ledgerbank.config import Config
from ledgerbank.logger import new_logger
from ledgerbank.server import create_app, main, register_dependencies
from ledgerbank.store import connect, init_schema


@pytest.fixture
def conn():
    connection = connect()
    init_schema(connection)
    yield connection
    connection.close()


def test_health_returns_ok_with_empty_body():
    client = create_app().test_client()
    rr = client.get("/_health")
    assert rr.status_code == 200
    assert rr.get_data() == b""


def test_preflight_is_answered_with_vary_headers():
    client = create_app().test_client()
    rr = client.open(
        "/_health",
        method="OPTIONS",
        headers={"Origin": "http://app.example.com", "Access-Control-Request-Method": "GET"},
    )
    assert rr.status_code == 200
    vary = rr.headers.getlist("Vary")
    assert "Origin" in vary
    assert "Access-Control-Request-Method" in vary
    assert "Access-Control-Allow-Origin" not in rr.headers


def test_actual_request_from_other_origin_gets_no_allow_origin():
    client = create_app().test_client()
    rr = client.get("/_health", headers={"Origin": "http://app.example.com"})
    assert rr.status_code == 200
    assert "Origin" in rr.headers.getlist("Vary")
    assert "Access-Control-Allow-Origin" not in rr.headers


def test_register_dependencies_routes_accounts(conn):
    app = create_app()
    register_dependencies(app, conn, Config(), new_logger("debug", io.StringIO()))
    client = app.test_client()
    created = client.post(
        "/accounts", data='{"account_id": 7, "initial_balance": "42"}', content_type="application/json"
    )
    assert created.status_code == 201
    balance = client.get("/accounts/7")
    assert balance.status_code == 200
    assert balance.get_json() == {"account_id": 7, "balance": "42"}


def test_register_dependencies_requires_logger(conn):
    with pytest.raises(ValueError, match="logger"):
        register_dependencies(create_app(), conn, Config(), None)


def test_main_exits_when_database_cannot_open(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("DB_NAME", str(tmp_path / "missing" / "bank"))
    monkeypatch.setenv("LOG_LEVEL", "error")
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 1
    assert "failed to connect to database" in capsys.readouterr().out
import io
import json

import pytest

from ledgerbank.logger import LogLevel, new_logger, parse_log_level


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


@pytest.mark.parametrize(
    "name, level",
    [
        ("debug", LogLevel.DEBUG),
        ("info", LogLevel.INFO),
        ("warn", LogLevel.WARN),
        ("error", LogLevel.ERROR),
        ("fatal", LogLevel.FATAL),
        ("panic", LogLevel.PANIC),
        ("verbose", LogLevel.INFO),
        ("", LogLevel.INFO),
    ],
)
def test_parse_log_level(name, level):
    assert parse_log_level(name) is level


def test_info_writes_json_line():
    stream = io.StringIO()
    new_logger("info", stream).info("hello %s", "world")
    [record] = _records(stream)
    assert record["level"] == "info"
    assert record["message"] == "hello world"
    assert "time" in record


def test_lower_levels_are_filtered():
    stream = io.StringIO()
    log = new_logger("error", stream)
    log.debug("a")
    log.info("b")
    log.warn("c")
    log.error("d")
    assert [r["message"] for r in _records(stream)] == ["d"]


def test_integer_and_missing_verbs():
    stream = io.StringIO()
    log = new_logger("debug", stream)
    log.debug("%d items", 3)
    log.debug("%v")
    messages = [r["message"] for r in _records(stream)]
    assert messages == ["3 items", "%!v(MISSING)"]


def test_with_field_does_not_change_parent():
    stream = io.StringIO()
    parent = new_logger("debug", stream)
    child = parent.with_field("domain", "account")
    child.warn("x")
    parent.warn("y")
    first, second = _records(stream)
    assert first["domain"] == "account"
    assert "domain" not in second
    assert first["level"] == "warn"


def test_with_fields_adds_all():
    stream = io.StringIO()
    log = new_logger("debug", stream).with_fields({"handler": "customer", "attempt": 2})
    log.error("boom")
    [record] = _records(stream)
    assert record["handler"] == "customer"
    assert record["attempt"] == 2


def test_fatal_logs_then_exits():
    stream = io.StringIO()
    with pytest.raises(SystemExit) as info:
        new_logger("debug", stream).fatal("failed to connect to database: %v", "refused")
    assert info.value.code == 1
    [record] = _records(stream)
    assert record["level"] == "fatal"


def test_fatal_exits_even_when_filtered():
    stream = io.StringIO()
    with pytest.raises(SystemExit):
        new_logger("panic", stream).fatal("gone")
    assert stream.getvalue() == ""
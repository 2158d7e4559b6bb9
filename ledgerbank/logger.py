"""Levelled JSON-lines logger with bound context fields."""

from __future__ import annotations

import json
import re
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4
    PANIC = 5

    @property
    def label(self) -> str:
        return self.name.lower()


_LEVELS = {level.label: level for level in LogLevel}


def parse_log_level(level: str) -> LogLevel:
    """Map a level name to a LogLevel; unknown names give INFO."""
    return _LEVELS.get(level, LogLevel.INFO)


_VERB = re.compile(r"%([+#-]?)([a-zA-Z%])")


def _format_value(flag: str, verb: str, value: Any) -> str:
    if verb in "vs":
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "<nil>"
        return str(value)
    if verb == "d":
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return f"%!d({type(value).__name__}={value})"
    if verb == "q":
        return json.dumps(str(value), ensure_ascii=False)
    if verb == "f":
        try:
            return f"{float(value):f}"
        except (TypeError, ValueError):
            return f"%!f({type(value).__name__}={value})"
    if verb == "T":
        return type(value).__name__
    return str(value)


def _sprintf(template: str, args: tuple[Any, ...]) -> str:
    pending = list(args)

    def substitute(match: re.Match[str]) -> str:
        flag, verb = match.groups()
        if verb == "%":
            return "%"
        if not pending:
            return f"%!{verb}(MISSING)"
        return _format_value(flag, verb, pending.pop(0))

    text = _VERB.sub(substitute, template)
    if pending:
        extras = ", ".join(f"{type(arg).__name__}={arg}" for arg in pending)
        text += f"%!(EXTRA {extras})"
    return text


def _timestamp() -> str:
    stamp = datetime.now().astimezone().isoformat(timespec="seconds")
    return stamp.replace("+00:00", "Z")


class Logger:
    """Writes one JSON object per line for each event at or above ``level``."""

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        stream: TextIO | None = None,
        fields: dict[str, Any] | None = None,
    ) -> None:
        self.level = level
        self.fields = dict(fields or {})
        self._stream = stream

    def _log(self, level: LogLevel, message: str, args: tuple[Any, ...]) -> None:
        if level < self.level:
            return
        record: dict[str, Any] = {"level": level.label}
        record.update(self.fields)
        record["time"] = _timestamp()
        record["message"] = _sprintf(message, args)
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(json.dumps(record, default=str, ensure_ascii=False, separators=(",", ":")) + "\n")
        stream.flush()

    def info(self, message: str, *args: Any) -> None:
        self._log(LogLevel.INFO, message, args)

    def error(self, message: str, *args: Any) -> None:
        self._log(LogLevel.ERROR, message, args)

    def debug(self, message: str, *args: Any) -> None:
        self._log(LogLevel.DEBUG, message, args)

    def warn(self, message: str, *args: Any) -> None:
        self._log(LogLevel.WARN, message, args)

    def fatal(self, message: str, *args: Any) -> None:
        """Log at fatal level, then exit with status 1 whatever the level."""
        self._log(LogLevel.FATAL, message, args)
        raise SystemExit(1)

    def with_fields(self, fields: dict[str, Any]) -> Logger:
        """Return a new logger that adds ``fields`` to every event."""
        return Logger(self.level, self._stream, {**self.fields, **fields})

    def with_field(self, key: str, value: Any) -> Logger:
        """Return a new logger that adds one field to every event."""
        return Logger(self.level, self._stream, {**self.fields, key: value})


def new_logger(level: str = "info", stream: TextIO | None = None) -> Logger:
    """Create a logger at the named level writing to ``stream`` (default stdout)."""
    return Logger(parse_log_level(level), stream)
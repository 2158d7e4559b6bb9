"""Settings read from environment variables."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass

PASSWORD = "password"


@dataclass(frozen=True)
class Config:
    """Service settings; every field has a default.

    Each field is read from the environment variable named by its
    upper-cased field name (``db_host`` from ``DB_HOST`` and so on).
    """

    env: str = "dev"
    port: str = "80"
    db_host: str = "localhost"
    db_port: str = "5432"
    db_user: str = "postgres"
    db_password: str = PASSWORD
    db_name: str = "postgres"
    log_level: str = "debug"


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from ``environ`` (default: the process environment).

    A variable that is set, even to an empty string, overrides the default.
    """
    source = os.environ if environ is None else environ
    values = {
        field.name: source[field.name.upper()]
        for field in dataclasses.fields(Config)
        if field.name.upper() in source
    }
    return Config(**values)
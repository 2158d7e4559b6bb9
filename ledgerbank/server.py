"""The web application: CORS policy, health check and service start-up."""

from __future__ import annotations

import argparse
import signal
import sqlite3
import threading
from contextlib import closing
from dataclasses import dataclass
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIServer, make_server

from flask import Flask, Response, request

from .account import AccountDomain
from .config import Config, load_config
from .handler import Handler
from .logger import Logger, new_logger
from .response import status_only
from .store import Queries, connect, init_schema
from .transaction import TransactionDomain


@dataclass(frozen=True)
class _CorsPolicy:
    allowed_origins: tuple[str, ...]
    allowed_methods: tuple[str, ...]
    allowed_headers: tuple[str, ...]
    allow_credentials: bool
    max_age: int

    def origin_allowed(self, origin: str) -> bool:
        origins = [allowed.lower() for allowed in self.allowed_origins]
        return "*" in origins or origin.lower() in origins

    def method_allowed(self, method: str) -> bool:
        method = method.upper()
        return method == "OPTIONS" or method in self.allowed_methods

    def headers_allowed(self, headers: list[str]) -> bool:
        if "*" in self.allowed_headers or not headers:
            return True
        allowed = {header.lower() for header in self.allowed_headers}
        return all(header.lower() in allowed for header in headers)

    def preflight(self) -> Response:
        response = status_only(200)
        for name in ("Origin", "Access-Control-Request-Method", "Access-Control-Request-Headers"):
            response.headers.add("Vary", name)
        origin = request.headers.get("Origin", "")
        method = request.headers.get("Access-Control-Request-Method", "")
        requested = [
            header.strip()
            for header in request.headers.get("Access-Control-Request-Headers", "").split(",")
            if header.strip()
        ]
        if not origin or not self.origin_allowed(origin):
            return response
        if not self.method_allowed(method) or not self.headers_allowed(requested):
            return response
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = method.upper()
        if requested:
            response.headers["Access-Control-Allow-Headers"] = ", ".join(requested)
        if self.allow_credentials:
            response.headers["Access-Control-Allow-Credentials"] = "true"
        if self.max_age > 0:
            response.headers["Access-Control-Max-Age"] = str(self.max_age)
        return response

    def decorate(self, response: Response) -> Response:
        if request.method == "OPTIONS":
            return response
        response.headers.add("Vary", "Origin")
        origin = request.headers.get("Origin", "")
        if not origin or not self.origin_allowed(origin):
            return response
        if not self.method_allowed(request.method):
            return response
        response.headers["Access-Control-Allow-Origin"] = origin
        if self.allow_credentials:
            response.headers["Access-Control-Allow-Credentials"] = "true"
        return response


_CORS = _CorsPolicy(
    allowed_origins=("",),
    allowed_methods=("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"),
    allowed_headers=("*",),
    allow_credentials=True,
    max_age=300,
)


def _is_preflight() -> bool:
    return request.method == "OPTIONS" and bool(
        request.headers.get("Access-Control-Request-Method")
    )


def create_app() -> Flask:
    """A Flask app with the CORS policy and the health check installed."""
    app = Flask(__name__)

    @app.before_request
    def _answer_preflight():
        if _is_preflight():
            return _CORS.preflight()
        return None

    @app.after_request
    def _add_cors_headers(response: Response) -> Response:
        if _is_preflight():
            return response
        return _CORS.decorate(response)

    app.add_url_rule("/_health", "health", lambda: status_only(200), methods=["GET"])
    return app


def register_dependencies(
    app: Flask, conn: sqlite3.Connection, cfg: Config, log: Logger | None
) -> Handler:
    """Build the domains and handler over ``conn`` and route them on ``app``."""
    queries = Queries(conn)
    account_domain = AccountDomain(queries, log)
    transaction_domain = TransactionDomain(queries, log)
    handler = Handler(account_domain, transaction_domain, log)
    handler.register_routes(app)
    return handler


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    pass


def _database_path(name: str) -> str:
    return name if name == ":memory:" else f"{name}.db"


def main(argv: list[str] | None = None) -> int:
    """Serve the API until interrupted; settings come from the environment."""
    argparse.ArgumentParser(
        description="Serve the ledger HTTP API. Settings are read from the environment."
    ).parse_args(argv)

    cfg = load_config()
    log = new_logger(cfg.log_level)

    try:
        conn = connect(_database_path(cfg.db_name))
        init_schema(conn)
    except sqlite3.Error as exc:
        log.fatal("failed to connect to database: %v", exc)

    with closing(conn):
        app = create_app()
        try:
            register_dependencies(app, conn, cfg, log)
        except ValueError as exc:
            log.fatal("failed to register dependencies: %v", exc)

        log.info("starting server on port %s", cfg.port)
        try:
            server = make_server("", int(cfg.port), app, server_class=_ThreadingWSGIServer)
        except (OSError, ValueError) as exc:
            log.error("serving http server: %v", exc)
            return 1

        def _shutdown(_signum, _frame) -> None:
            log.info("received shutdown signal, gracefully shutting down...")
            threading.Thread(target=server.shutdown, daemon=True).start()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        with closing(server):
            server.serve_forever()
    return 0
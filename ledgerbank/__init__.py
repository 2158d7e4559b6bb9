"""Ledger-style banking service on SQLite: accounts, balances and atomic fund transfers over a JSON HTTP API."""

__version__ = "0.1.0"
# ledgerbank

A small banking service that keeps a ledger of accounts and moves money between
them. An account's balance is not a stored number. It is worked out from the
account's latest balance snapshot plus every later credit and minus every later
debit. A transfer writes a transfer record, a debit on the source account and a
credit on the destination account in one atomic step. Amounts are exact
decimals. Requests may carry at most six decimal places.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
ledgerbank
```

`ledgerbank --help` prints a short usage text. The command takes no other
options. It reads its settings from the environment:

| Variable      | Default     | Used for                                              |
|---------------|-------------|-------------------------------------------------------|
| `ENV`         | `dev`       | read into the config; nothing else uses it             |
| `PORT`        | `80`        | port the HTTP server listens on, on all interfaces     |
| `DB_HOST`     | `localhost` | read into the config; not used by the SQLite store     |
| `DB_PORT`     | `5432`      | read into the config; not used by the SQLite store     |
| `DB_USER`     | `postgres`  | read into the config; not used by the SQLite store     |
| `DB_PASSWORD` | `password`  | read into the config; not used by the SQLite store     |
| `DB_NAME`     | `postgres`  | SQLite file name, without the `.db` suffix             |
| `LOG_LEVEL`   | `debug`     | `debug`, `info`, `warn`, `error`, `fatal` or `panic`; any other value means `info` |

A variable that is set overrides its default, even when it is set to an empty
string.

The data lives in the SQLite file `<DB_NAME>.db` in the current directory. With
the defaults this is `postgres.db`. With `DB_NAME=:memory:` the data lives in
memory only and is lost when the server stops. The tables are created at start-up
if they do not exist yet. Choose a `PORT` above 1024 if you do not run the server
with the rights to bind port 80.

Log events are written to standard output, one JSON object per line, with
`level`, any bound fields, `time` and `message`. The server uses a threaded WSGI
server from the standard library. It shuts down cleanly on `SIGINT` or
`SIGTERM`.

## HTTP API

Request bodies must be sent with a `Content-Type` that contains
`application/json`. Bodies are limited to 1 MiB. Errors come back as
`{"error":"<message>"}`.

### `POST /accounts`

Creates an account together with its opening credit.

```json
{"account_id": 123, "initial_balance": "100"}
```

On success the response is `201 Created` with an empty body. These cases give
`400 Bad Request`:

- a missing or zero account id: `{"error":"account id is required"}`
- a missing or zero balance: `{"error":"initial balance is required"}`
- a negative balance: `{"error":"initial balance must be greater than 0"}`
- more than six decimal places: `{"error":"initial balance has too many decimal places (max 6)"}`
- a body that cannot be decoded: an `invalid JSON: …` message

If the store fails, for example because the account already exists, the answer is
`500` with a generic message. The failure is logged, and nothing is kept.

### `GET /accounts/<account_id>`

Returns the current balance. The balance is written as a decimal string without
trailing zeros:

```json
{"account_id":123,"balance":"250.51234"}
```

An id that is not a base-10 unsigned 64-bit integer gives
`{"error":"invalid account id"}`. An unknown account gives
`{"error":"invalid account"}`. Both come back with status `400`.

### `POST /transactions`

Transfers funds from one account to another.

```json
{"source_account_id": 100, "destination_account_id": 200, "amount": "50.123456"}
```

On success the response is `200 OK` with an empty body. Refusals come back with
status `400` and one of these bodies:

- `{"error":"invalid request"}` for a body that is malformed or incomplete, an amount that is zero or negative, or more than six decimal places
- `{"error":"your account has insufficient funds"}`
- `{"error":"invalid account"}` when either account does not exist
- `{"error":"validation error: Cannot transfer to the same account"}`

Unexpected failures come back with status `500` and a generic message, and are
logged.

### `GET /_health`

Returns `200 OK` with an empty body.

## Using it as a library

The server is built from these modules, and each can be used on its own:

- `ledgerbank.entity`: the domain records and the errors. The records include
  `CreateAccount` (with `validate()`), `CreateTransferFundsParams` and
  `CreateTransferFundsResult`. The errors are `BankError` and its subclasses
  `ValidationError`, `NoRowsError`, `DataNotFoundError` and
  `InsufficientFundsError`.
- `ledgerbank.store`:
  - `connect(name)` opens a database and `init_schema(conn)` creates its tables.
  - `Queries` wraps the statements: `create_account`, `get_account_balance`,
    `create_credit_transaction`, `create_debit_transaction`,
    `create_transfer_transaction` and others.
  - `Queries.transaction()` is a context manager that groups statements
    atomically.
- `ledgerbank.account.AccountDomain` opens accounts and reads their balances.
- `ledgerbank.transaction.TransactionDomain` carries out transfers. The same
  module provides `parse_transfer_funds_result` and `map_transfer_error`.
- `ledgerbank.handler.Handler` holds the Flask view functions, and
  `Handler.register_routes(app)` attaches them to an app.
- `ledgerbank.server`:
  - `create_app()` builds the Flask app with the health check.
  - `register_dependencies(app, conn, cfg, log)` wires the domains and handler
    onto it.
  - `main()` is the entry point of the `ledgerbank` command.
- `ledgerbank.config.load_config()`, `ledgerbank.logger.new_logger()`,
  `ledgerbank.request.bind_json()` and `ledgerbank.response.json_response()` are
  the supporting helpers.

```python
from decimal import Decimal

from ledgerbank.account import AccountDomain
from ledgerbank.entity import CreateAccount
from ledgerbank.logger import new_logger
from ledgerbank.store import Queries, connect, init_schema

conn = connect()  # in-memory database
init_schema(conn)
accounts = AccountDomain(Queries(conn), new_logger("error"))
accounts.create_account(CreateAccount(account_id=1, initial_balance=Decimal("100")))
print(accounts.get_account_balance(1))  # 100
```

## What it does not do

- Storage is a local SQLite file only. The package does not connect to a
  database server, so the `DB_HOST`, `DB_PORT`, `DB_USER` and `DB_PASSWORD`
  settings are read but have no effect.
- There is no way to manage schema changes over time. The tables are created if
  they are missing, and that is all.
- There is no authentication. There are no endpoints to list transactions or
  transfers, and none to write balance snapshots: snapshots can only be inserted
  directly into the database.
- There is no background worker.
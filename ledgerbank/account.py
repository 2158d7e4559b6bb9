"""Opening accounts and reading their balances."""

from __future__ import annotations

from decimal import Decimal

from .entity import CreateAccount, NoRowsError
from .logger import Logger
from .store import Queries


class AccountDomain:
    """Account operations on top of the store."""

    def __init__(self, queries: Queries | None, logger: Logger | None) -> None:
        if queries is None:
            raise ValueError("queries is None")
        if logger is None:
            raise ValueError("logger is None")
        self._queries = queries
        self._logger = logger.with_field("domain", "account")

    def create_account(self, account: CreateAccount) -> None:
        """Create the account and its initial credit in one transaction.

        Raises ValidationError for a bad request and RuntimeError if the
        store fails; nothing is kept when any step fails.
        """
        account.validate()
        try:
            with self._queries.transaction() as queries:
                try:
                    queries.create_account(account.account_id)
                except Exception as exc:
                    self._logger.error(
                        "failed to create account record for account_id=%d: %v",
                        account.account_id,
                        exc,
                    )
                    raise RuntimeError(f"failed to create account: {exc}") from exc
                try:
                    queries.create_credit_transaction(
                        account.account_id, None, account.initial_balance
                    )
                except Exception as exc:
                    self._logger.error(
                        "failed to create initial credit transaction for account_id=%d: %v",
                        account.account_id,
                        exc,
                    )
                    raise RuntimeError(f"failed to create initial transaction: {exc}") from exc
        except RuntimeError:
            raise
        except Exception as exc:
            self._logger.error(
                "failed to commit transaction for account_id=%d: %v", account.account_id, exc
            )
            raise RuntimeError(f"failed to commit transaction: {exc}") from exc

    def get_account_balance(self, account_id: int) -> Decimal:
        """Return the current balance; raise NoRowsError if there is no such account."""
        try:
            exists = self._queries.check_account_exists(account_id)
        except Exception as exc:
            raise RuntimeError(f"failed to check account exists: {exc}") from exc
        if not exists:
            raise NoRowsError()
        try:
            return self._queries.get_account_balance(account_id, lock_for_update=True)
        except NoRowsError:
            raise
        except Exception as exc:
            self._logger.error(
                "failed to get account balance for account_id=%d: %v", account_id, exc
            )
            raise RuntimeError(f"failed to get account balance: {exc}") from exc
"""User balances and withdrawal history stored in the database."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import closing
from datetime import datetime, timezone

from gophermart.mappers import (
    balance_from_row,
    float_to_numeric,
    numeric_to_float,
    withdrawal_from_row,
)
from gophermart.model import Balance, InsufficientFundsError, Withdrawal
from gophermart.storage import StorageError, connect, transaction

_BALANCE = "SELECT balance, withdrawn FROM balances WHERE user_id = ?"
_UPDATE_BALANCE = "UPDATE balances SET balance = ?, withdrawn = ? WHERE user_id = ?"
_ADD_WITHDRAWAL = (
    "INSERT INTO withdrawals (id, user_id, order_number, withdrawn, processed_at) "
    "VALUES (?, ?, ?, ?, ?)"
)
_WITHDRAWALS = (
    "SELECT order_number, withdrawn, processed_at FROM withdrawals WHERE user_id = ?"
)


class BalanceRepository:
    """Reads balances and records withdrawals atomically."""

    def __init__(self, dsn: str) -> None:
        try:
            connect(dsn).close()
        except StorageError as exc:
            raise StorageError(f"failed to create pool: {exc}") from exc
        self._dsn = dsn

    def balance(self, user_id: uuid.UUID) -> Balance:
        """Return the user's current and withdrawn amounts."""
        with closing(connect(self._dsn)) as connection:
            try:
                row = connection.execute(_BALANCE, (user_id,)).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to get balance: {exc}") from exc
        if row is None:
            raise StorageError("failed to get balance: no rows in result set")
        return balance_from_row(row["balance"], row["withdrawn"])

    def withdraw(self, user_id: uuid.UUID, order_number: str, amount: float) -> None:
        """Spend points against an order; raise InsufficientFundsError if the balance is short."""
        with closing(connect(self._dsn)) as connection, transaction(connection):
            try:
                row = connection.execute(_BALANCE, (user_id,)).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to check balance: {exc}") from exc
            if row is None:
                raise StorageError("failed to check balance: no rows in result set")

            current = numeric_to_float(row["balance"])
            if current < amount:
                raise InsufficientFundsError()

            new_balance = float_to_numeric(current - amount)
            new_withdrawn = float_to_numeric(numeric_to_float(row["withdrawn"]) + amount)
            try:
                connection.execute(_UPDATE_BALANCE, (new_balance, new_withdrawn, user_id))
            except sqlite3.Error as exc:
                raise StorageError(f"failed to update balance: {exc}") from exc

            try:
                connection.execute(
                    _ADD_WITHDRAWAL,
                    (
                        uuid.uuid4(),
                        user_id,
                        order_number,
                        float_to_numeric(amount),
                        datetime.now(timezone.utc),
                    ),
                )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to add withdrawal: {exc}") from exc

    def withdrawal_history(self, user_id: uuid.UUID) -> list[Withdrawal]:
        """Return every withdrawal the user has made."""
        with closing(connect(self._dsn)) as connection:
            try:
                rows = connection.execute(_WITHDRAWALS, (user_id,)).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to get withdrawals: {exc}") from exc
        return [
            withdrawal_from_row(row["order_number"], row["withdrawn"], row["processed_at"])
            for row in rows
        ]
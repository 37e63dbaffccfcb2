"""Uploaded orders stored in the database."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import closing
from datetime import datetime, timezone

from gophermart.mappers import order_float_to_numeric, order_numeric_to_float
from gophermart.model import Order, OrderStatus
from gophermart.storage import StorageError, connect, transaction

_COLUMNS = "number, status, accrual, uploaded_at, user_id"

_ALL_ORDERS = (
    f"SELECT {_COLUMNS} FROM orders WHERE user_id = ? ORDER BY uploaded_at DESC"
)
_CREATE_ORDER = (
    "INSERT INTO orders (number, user_id, status, accrual, uploaded_at) "
    "VALUES (?, ?, ?, 0, ?)"
)
_GET_ORDER = f"SELECT {_COLUMNS} FROM orders WHERE number = ?"
_UPDATE_ORDER = "UPDATE orders SET status = ?, accrual = ? WHERE number = ?"
_INCREASE_BALANCE = (
    "UPDATE balances "
    "SET balance = balance + COALESCE((SELECT accrual FROM orders WHERE number = ?), 0) "
    "WHERE user_id = (SELECT user_id FROM orders WHERE number = ?)"
)


def _order_from_row(row: sqlite3.Row) -> Order:
    return Order(
        number=row["number"],
        user_id=row["user_id"],
        status=OrderStatus.parse(row["status"]),
        accrual=order_numeric_to_float(row["accrual"]),
        uploaded_at=row["uploaded_at"],
    )


class OrderRepository:
    """Stores orders and credits accruals to their owners' balances."""

    def __init__(self, dsn: str) -> None:
        try:
            connect(dsn).close()
        except StorageError as exc:
            raise StorageError(f"failed to create pool: {exc}") from exc
        self._dsn = dsn

    def order_info_for_update(self, number: str) -> Order | None:
        """Return the order with this number, or None if there is none."""
        with closing(connect(self._dsn)) as connection:
            try:
                row = connection.execute(_GET_ORDER, (number,)).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to get order: {exc}") from exc
        return None if row is None else _order_from_row(row)

    def create_order(self, order: Order) -> None:
        """Insert a new order with a zero accrual, stamped with the current time."""
        with closing(connect(self._dsn)) as connection:
            try:
                connection.execute(
                    _CREATE_ORDER,
                    (
                        order.number,
                        order.user_id,
                        OrderStatus(order.status).value,
                        datetime.now(timezone.utc),
                    ),
                )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to create order: {exc}") from exc

    def update_order(self, order: Order) -> None:
        """Set the order's status and accrual and add the accrual to the owner's balance."""
        with closing(connect(self._dsn)) as connection, transaction(connection):
            try:
                connection.execute(
                    _UPDATE_ORDER,
                    (
                        OrderStatus(order.status).value,
                        order_float_to_numeric(order.accrual),
                        order.number,
                    ),
                )
                connection.execute(_INCREASE_BALANCE, (order.number, order.number))
            except sqlite3.Error as exc:
                raise StorageError(f"failed to update order: {exc}") from exc

    def all_orders(self, user_id: uuid.UUID) -> list[Order]:
        """Return the user's orders, newest first."""
        with closing(connect(self._dsn)) as connection:
            try:
                rows = connection.execute(_ALL_ORDERS, (user_id,)).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to get orders: {exc}") from exc
        return [_order_from_row(row) for row in rows]
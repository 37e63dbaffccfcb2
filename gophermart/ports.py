"""Interfaces the services depend on."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from gophermart.model import Accrual, Balance, Order, Token, User, Withdrawal


@runtime_checkable
class UserStore(Protocol):
    def create_user(self, username: str, password_hash: str) -> uuid.UUID:
        """Store a new user and return its id."""
        ...

    def user_data(self, username: str) -> User:
        """Return the stored user with this name."""
        ...


@runtime_checkable
class OrderStore(Protocol):
    def order_info_for_update(self, number: str) -> Order | None:
        """Return the order with this number, or None if there is none."""
        ...

    def create_order(self, order: Order) -> None:
        ...

    def update_order(self, order: Order) -> None:
        ...

    def all_orders(self, user_id: uuid.UUID) -> list[Order]:
        ...


@runtime_checkable
class BalanceStore(Protocol):
    def balance(self, user_id: uuid.UUID) -> Balance:
        ...

    def withdraw(self, user_id: uuid.UUID, order_number: str, amount: float) -> None:
        ...

    def withdrawal_history(self, user_id: uuid.UUID) -> list[Withdrawal]:
        ...


@runtime_checkable
class AccrualClient(Protocol):
    def status(self, order_number: str) -> Accrual:
        """Ask the accrual system about an order."""
        ...


@runtime_checkable
class TokenValidator(Protocol):
    def validate(self, token_string: str) -> Token:
        """Return the claims of a valid token or raise."""
        ...
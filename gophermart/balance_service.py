"""Balance queries and withdrawals."""

from __future__ import annotations

import uuid

from gophermart import luhn
from gophermart.model import Balance, InvalidOrderNumberError, Withdrawal
from gophermart.ports import BalanceStore


class BalanceService:
    """Checks withdrawal requests before they reach the store."""

    def __init__(self, repository: BalanceStore) -> None:
        self._repository = repository

    def balance(self, user_id: uuid.UUID) -> Balance:
        return self._repository.balance(user_id)

    def withdraw(self, user_id: uuid.UUID, order_number: str, amount: float) -> None:
        """Spend points against a Luhn-valid order number."""
        if not order_number or not luhn.validate(order_number):
            raise InvalidOrderNumberError()
        self._repository.withdraw(user_id, order_number, amount)

    def all_withdrawals(self, user_id: uuid.UUID) -> list[Withdrawal]:
        return self._repository.withdrawal_history(user_id)
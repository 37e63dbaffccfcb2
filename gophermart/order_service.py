"""Order uploads and application of accrual results."""

from __future__ import annotations

import logging
import queue
import threading
import uuid

from gophermart import luhn
from gophermart.model import (
    Accrual,
    AccrualStatus,
    InvalidOrderNumberError,
    Order,
    OrderAlreadyUploadedError,
    OrderStatus,
    OrderUploadedByAnotherUserError,
    UnknownInternalError,
    new_order,
)
from gophermart.ports import OrderStore

RESEND_DELAY = 5.0


def order_from_accrual(accrual: Accrual) -> Order | None:
    """Return the order update for a final accrual answer, or None while it is pending."""
    if accrual.status == AccrualStatus.PROCESSED:
        return Order(number=accrual.order, status=OrderStatus.PROCESSED, accrual=accrual.accrual)
    if accrual.status == AccrualStatus.INVALID:
        return Order(number=accrual.order, status=OrderStatus.INVALID)
    return None


class OrderService:
    """Accepts order uploads and stores the results coming back from accrual."""

    resend_delay = RESEND_DELAY

    def __init__(
        self,
        repository: OrderStore,
        requests: queue.Queue[str],
        responses: queue.Queue[Accrual],
        logger: logging.Logger | None = None,
    ) -> None:
        self._repository = repository
        self._requests = requests
        self._responses = responses
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        threading.Thread(target=self._listen, name="order-responses", daemon=True).start()

    def upload_order(self, order_number: str, user_id: uuid.UUID) -> None:
        """Register a new order for the user and queue it for accrual lookup."""
        if not order_number or not luhn.validate(order_number):
            raise InvalidOrderNumberError()

        try:
            existing = self._repository.order_info_for_update(order_number)
        except Exception as exc:
            self._logger.error("failed to get order info: %s", exc)
            raise UnknownInternalError() from exc

        if existing is not None:
            if existing.user_id == user_id:
                raise OrderAlreadyUploadedError()
            raise OrderUploadedByAnotherUserError()

        try:
            self._repository.create_order(new_order(order_number, user_id))
        except Exception as exc:
            self._logger.error("failed to create order: %s", exc)
            raise UnknownInternalError() from exc

        self._requests.put(order_number)

    def all_orders(self, user_id: uuid.UUID) -> list[Order]:
        return self._repository.all_orders(user_id)

    def _listen(self) -> None:
        while True:
            response = self._responses.get()
            self._logger.debug("received response from accrual service: %r", response)
            order = order_from_accrual(response)
            if order is None:
                continue
            self._logger.debug("updating order: %r", order)
            try:
                self._repository.update_order(order)
            except Exception as exc:
                self._logger.error("failed to update order: %s", exc)
            timer = threading.Timer(self.resend_delay, self._responses.put, args=(response,))
            timer.daemon = True
            timer.start()
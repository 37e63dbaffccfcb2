"""Client of the external accrual system and the worker pool that polls it."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any

from requests import RequestException, Session

from gophermart.model import Accrual, AccrualStatus
from gophermart.ports import AccrualClient

ERROR_RETRY_DELAY = 10.0
PROCESSING_RETRY_DELAY = 2.0

_PENDING = (AccrualStatus.REGISTERED, AccrualStatus.PROCESSING)


def normalize_address(address: str) -> str:
    """Give a bare host:port (or :port) address an http scheme."""
    if address.startswith(("http://", "https://")):
        return address
    if address.startswith(":"):
        return "http://localhost" + address
    return "http://" + address


class AccrualError(Exception):
    """Raised when the accrual system cannot be asked or answers badly."""


class AccrualAdapter:
    """Asks the accrual system about single orders over HTTP."""

    def __init__(
        self,
        session: Session | None = None,
        logger: logging.Logger | None = None,
        accrual_address: str = "localhost:8080",
    ) -> None:
        self._session = session if session is not None else Session()
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._address = normalize_address(accrual_address)

    def status(self, order_number: str) -> Accrual:
        """Return the accrual system's answer for the order."""
        self._logger.info("fetching accrual info order=%s", order_number)
        url = f"{self._address}/api/orders/{order_number}"
        try:
            response = self._session.get(url)
        except RequestException as exc:
            self._logger.error("failed to get accrual info order=%s: %s", order_number, exc)
            raise AccrualError(f"failed to get accrual info: {exc}") from exc

        with response:
            if response.status_code != 200:
                self._logger.error(
                    "non-200 response from accrual service status=%d order=%s",
                    response.status_code,
                    order_number,
                )
                raise AccrualError(f"accrual service returned status {response.status_code}")
            try:
                accrual = Accrual.from_dict(response.json())
            except ValueError as exc:
                self._logger.error(
                    "failed to decode accrual response order=%s: %s", order_number, exc
                )
                raise AccrualError(f"failed to decode accrual response: {exc}") from exc

        status = accrual.status.value if isinstance(accrual.status, AccrualStatus) else accrual.status
        self._logger.info(
            "accrual info received order=%s status=%s accrual=%s",
            order_number,
            status,
            accrual.accrual if accrual.accrual is not None else 0.0,
        )
        return accrual


class AccrualWorker:
    """Pool of threads that polls the accrual system until orders are final.

    Order numbers are read from ``requests``; final answers (anything but
    REGISTERED or PROCESSING) are put on ``responses``. Failed lookups are
    retried after ``error_retry_delay`` seconds, pending ones after
    ``processing_retry_delay`` seconds.
    """

    error_retry_delay = ERROR_RETRY_DELAY
    processing_retry_delay = PROCESSING_RETRY_DELAY

    def __init__(
        self,
        accrual: AccrualClient,
        rate_limiter: int,
        requests: queue.Queue[str],
        responses: queue.Queue[Accrual],
    ) -> None:
        self._accrual = accrual
        self._rate_limiter = rate_limiter
        self._requests = requests
        self._responses = responses

    def run(self) -> None:
        """Start ``rate_limiter`` background workers."""
        for index in range(self._rate_limiter):
            threading.Thread(
                target=self._serve, name=f"accrual-worker-{index}", daemon=True
            ).start()

    def _serve(self) -> None:
        while True:
            order_number = self._requests.get()
            try:
                response = self._accrual.status(order_number)
            except Exception:  # any failure means: ask again later
                self._retry_later(order_number, self.error_retry_delay)
                continue

            if response.status in _PENDING:
                self._retry_later(order_number, self.processing_retry_delay)
                continue

            self._responses.put(response)

    def _retry_later(self, order_number: str, delay: Any) -> None:
        timer = threading.Timer(delay, self._requests.put, args=(order_number,))
        timer.daemon = True
        timer.start()
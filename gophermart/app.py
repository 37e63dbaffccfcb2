"""Service assembly and the command-line entry point."""

from __future__ import annotations

import logging
import queue
import sys
from collections.abc import Sequence

from flask import Flask
from requests import Session

from gophermart.accrual import AccrualAdapter, AccrualWorker
from gophermart.auth import AuthService
from gophermart.balance_repository import BalanceRepository
from gophermart.balance_service import BalanceService
from gophermart.config import Config, ConfigError, load_config
from gophermart.model import Accrual
from gophermart.order_service import OrderService
from gophermart.orders_repository import OrderRepository
from gophermart.storage import migrate
from gophermart.users_repository import UserRepository
from gophermart.web import create_app

_USAGE = """Usage of gophermart:
  -a string
    \tGophermart server address (default: localhost:8081)
  -d string
    \tDatabase DSN (default: empty, mandatory)
  -l\tEnable debug logging (default: false)
  -r string
    \tAccrual System address (default: localhost:8080)
  -s string
    \tJWT secret (default: empty)
  -t int
    \tRate limiter (default: 10)
"""


class _StdoutHandler(logging.StreamHandler):
    """Stream handler that always writes to the current standard output."""

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stdout
        super().emit(record)


def _make_logger(level: int) -> logging.Logger:
    logger = logging.getLogger("gophermart")
    if not any(isinstance(handler, _StdoutHandler) for handler in logger.handlers):
        handler = _StdoutHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def _split_address(address: str) -> tuple[str, int]:
    """Split host:port; an empty host means every interface."""
    host, separator, port = address.rpartition(":")
    if not separator:
        raise ValueError(f"missing port in address {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    try:
        number = int(port)
    except ValueError as exc:
        raise ValueError(f"invalid port in address {address!r}") from exc
    if not 0 <= number <= 65535:
        raise ValueError(f"invalid port in address {address!r}")
    return host, number


def bootstrap(config: Config) -> Flask:
    """Migrate the database, wire the services together and return the web app."""
    logger = _make_logger(config.log_level())

    migrate(config.database_dsn)

    users = UserRepository(config.database_dsn)
    orders = OrderRepository(config.database_dsn)
    balances = BalanceRepository(config.database_dsn)

    requests: queue.Queue[str] = queue.Queue()
    responses: queue.Queue[Accrual] = queue.Queue()

    adapter = AccrualAdapter(Session(), logger, config.accrual_address)
    AccrualWorker(adapter, config.rate_limiter, requests, responses).run()

    auth_service = AuthService(users, config.jwt_secret)
    order_service = OrderService(orders, requests, responses, logger)
    balance_service = BalanceService(balances)

    return create_app(auth_service, order_service, balance_service, logger)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the service; return the process exit status."""
    try:
        config = load_config(argv)
    except ConfigError as exc:
        sys.stderr.write(str(exc) + "\n")
        sys.stderr.write(_USAGE)
        return 1

    try:
        app = bootstrap(config)
    except Exception as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    try:
        host, port = _split_address(config.server_address)
        app.run(host=host, port=port, threaded=True)
    except (OSError, ValueError) as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
"""Service configuration from command-line flags and environment variables."""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_INT = re.compile(r"[+-]?[0-9]+")

_TEXT_VARIABLES = {
    "RUN_ADDRESS": "server_address",
    "ACCRUAL_SYSTEM_ADDRESS": "accrual_address",
    "DATABASE_URI": "database_dsn",
}


class ConfigError(Exception):
    """Raised when the configuration is incomplete or malformed."""


@dataclass(frozen=True)
class Config:
    server_address: str = "localhost:8081"
    accrual_address: str = "localhost:8080"
    database_dsn: str = ""
    debug: bool = False
    jwt_secret: str = ""
    rate_limiter: int = 10

    def log_level(self) -> int:
        return logging.DEBUG if self.debug else logging.INFO


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gophermart", exit_on_error=False)
    parser.add_argument("-a", dest="server_address", default="localhost:8081",
                        help="Gophermart server address (default: localhost:8081)")
    parser.add_argument("-r", dest="accrual_address", default="localhost:8080",
                        help="Accrual System address (default: localhost:8080)")
    parser.add_argument("-d", dest="database_dsn", default="",
                        help="Database DSN (default: empty, mandatory)")
    parser.add_argument("-l", dest="debug", action="store_true",
                        help="Enable debug logging (default: false)")
    parser.add_argument("-s", dest="jwt_secret", default="",
                        help="JWT secret (default: empty)")
    parser.add_argument("-t", dest="rate_limiter", type=int, default=10,
                        help="Rate limiter (default: 10)")
    return parser


def _parse_bool(name: str, value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"invalid boolean value {value!r} in {name}")


def _parse_int(name: str, value: str) -> int:
    if not _INT.fullmatch(value):
        raise ConfigError(f"invalid integer value {value!r} in {name}")
    return int(value)


def load_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Read flags, let non-empty environment variables override them, and check the result."""
    if argv is None:
        argv = sys.argv[1:]
    if environ is None:
        environ = os.environ

    try:
        namespace, extras = _build_parser().parse_known_args(list(argv))
    except argparse.ArgumentError as exc:
        raise ConfigError(str(exc)) from exc

    if extras:
        raise ConfigError(f"unknown flag or argument [{' '.join(extras)}]")

    config = Config(
        server_address=namespace.server_address,
        accrual_address=namespace.accrual_address,
        database_dsn=namespace.database_dsn,
        debug=namespace.debug,
        jwt_secret=namespace.jwt_secret,
        rate_limiter=namespace.rate_limiter,
    )

    overrides: dict[str, object] = {}
    for variable, field_name in _TEXT_VARIABLES.items():
        value = environ.get(variable, "")
        if value:
            overrides[field_name] = value
    if signing_key := environ.get("JWT_SECRET", ""):
        overrides["jwt_secret"] = signing_key
    if debug := environ.get("DEBUG", ""):
        overrides["debug"] = _parse_bool("DEBUG", debug)
    if limit := environ.get("RATE_LIMITER", ""):
        overrides["rate_limiter"] = _parse_int("RATE_LIMITER", limit)

    config = replace(config, **overrides)

    if not config.database_dsn:
        raise ConfigError("database DSN is mandatory")

    return config
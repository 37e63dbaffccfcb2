"""User accounts stored in the database."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import closing

from gophermart.model import UnknownInternalError, User, UserAlreadyExistsError
from gophermart.storage import StorageError, connect, transaction

_CHECK_USERNAME = "SELECT EXISTS(SELECT 1 FROM users WHERE username = ?) AS user_exists"
_CREATE_USER = "INSERT INTO users (id, username, password_hash) VALUES (?, ?, ?)"
_CREATE_BALANCE = "INSERT INTO balances (user_id, balance, withdrawn) VALUES (?, 0, 0)"
_USER_BY_USERNAME = "SELECT id, username, password_hash FROM users WHERE username = ?"


class UserRepository:
    """Creates users together with their empty balance, and looks them up."""

    def __init__(self, dsn: str) -> None:
        try:
            connect(dsn).close()
        except StorageError as exc:
            raise StorageError(f"failed to create pool: {exc}") from exc
        self._dsn = dsn

    def create_user(self, username: str, password_hash: str) -> uuid.UUID:
        """Store a new user with a zero balance and return its id."""
        with closing(connect(self._dsn)) as connection, transaction(connection):
            try:
                exists = connection.execute(_CHECK_USERNAME, (username,)).fetchone()[0]
            except sqlite3.Error as exc:
                raise StorageError(f"failed to check username: {exc}") from exc
            if exists:
                raise UserAlreadyExistsError()

            new_id = uuid.uuid4()
            try:
                connection.execute(_CREATE_USER, (new_id, username, password_hash))
                connection.execute(_CREATE_BALANCE, (new_id,))
            except sqlite3.Error as exc:
                raise UnknownInternalError(f"{exc}: unknown internal error") from exc
        return new_id

    def user_data(self, username: str) -> User:
        """Return the stored user with this name."""
        with closing(connect(self._dsn)) as connection:
            try:
                row = connection.execute(_USER_BY_USERNAME, (username,)).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to read user: {exc}") from exc
        if row is None:
            raise StorageError("no rows in result set")
        return User(id=row["id"], username=row["username"], password_hash=row["password_hash"])
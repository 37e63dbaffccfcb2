"""Registration, login and access tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from gophermart.model import GophermartError, Token
from gophermart.ports import UserStore

TOKEN_TTL = timedelta(hours=24)

_BCRYPT_COST = 10
_BCRYPT_MAX_BYTES = 72
_ALGORITHMS = ["HS256", "HS384", "HS512"]


class InvalidCredentialsError(GophermartError):
    default_message = "invalid credentials"


class InvalidTokenError(GophermartError):
    default_message = "invalid token"


def _from_timestamp(value: Any) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, timezone.utc)


class AuthService:
    """Creates users, checks their passwords and issues signed tokens."""

    def __init__(self, repository: UserStore, jwt_secret: str) -> None:
        self._repository = repository
        self._secret = jwt_secret.encode()

    def sign_up(self, username: str, password: str) -> str:
        """Register a user and return a fresh token for it."""
        encoded = password.encode()
        if len(encoded) > _BCRYPT_MAX_BYTES:
            raise ValueError("failed to hash password: password length exceeds 72 bytes")
        password_hash = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=_BCRYPT_COST)).decode()
        user_id = self._repository.create_user(username, password_hash)
        return self._generate_token(str(user_id))

    def sign_in(self, username: str, password: str) -> str:
        """Check the credentials and return a fresh token."""
        user = self._repository.user_data(username)
        try:
            matches = bcrypt.checkpw(password.encode(), user.password_hash.encode())
        except ValueError:
            matches = False
        if not matches:
            raise InvalidCredentialsError()
        return self._generate_token(str(user.id))

    def validate(self, token_string: str) -> Token:
        """Return the claims of a correctly signed, unexpired token."""
        try:
            claims = jwt.decode(
                token_string,
                self._secret,
                algorithms=_ALGORITHMS,
                options={"verify_iat": False},
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(f"failed to parse token: {exc}") from exc

        user_id = claims.get("user_id", "")
        if not isinstance(user_id, str):
            raise InvalidTokenError()
        return Token(
            user_id=user_id,
            expires_at=_from_timestamp(claims.get("exp")),
            issued_at=_from_timestamp(claims.get("iat")),
        )

    def _generate_token(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {"user_id": user_id, "exp": now + TOKEN_TTL, "iat": now}
        return jwt.encode(claims, self._secret, algorithm="HS256")
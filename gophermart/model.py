"""Domain entities and errors of the loyalty service."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_ZERO_TIME = "0001-01-01T00:00:00Z"


def _rfc3339(moment: datetime | None) -> str:
    """Render a timestamp the way the API exposes it (RFC 3339, trimmed fraction)."""
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


class AccrualStatus(str, Enum):
    """Order state as reported by the accrual system."""

    REGISTERED = "REGISTERED"
    INVALID = "INVALID"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"


class OrderStatus(str, Enum):
    """Order state as stored by this service."""

    NEW = "NEW"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"

    @classmethod
    def parse(cls, status: str) -> OrderStatus:
        """Return the matching status, falling back to NEW for unknown text."""
        try:
            return cls(status)
        except ValueError:
            return cls.NEW


@dataclass
class Accrual:
    """Answer of the accrual system about one order."""

    order: str
    status: AccrualStatus | str
    accrual: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Accrual:
        """Build an accrual from decoded JSON; raise ValueError on malformed data."""
        if not isinstance(data, dict):
            raise ValueError("accrual response must be a JSON object")
        order = data.get("order", "")
        if not isinstance(order, str):
            raise ValueError("accrual field 'order' must be a string")
        raw_status = data.get("status", "")
        if not isinstance(raw_status, str):
            raise ValueError("accrual field 'status' must be a string")
        try:
            status: AccrualStatus | str = AccrualStatus(raw_status)
        except ValueError:
            status = raw_status
        value = data.get("accrual")
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("accrual field 'accrual' must be a number")
            value = float(value)
        return cls(order=order, status=status, accrual=value)


@dataclass
class Balance:
    """Current points and the total already withdrawn."""

    current: float = 0.0
    withdrawn: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"current": self.current, "withdrawn": self.withdrawn}


@dataclass
class Order:
    """An uploaded order and its accrual state."""

    number: str
    user_id: uuid.UUID | None = None
    status: OrderStatus = OrderStatus.NEW
    accrual: float | None = None
    uploaded_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "number": self.number,
            "status": OrderStatus(self.status).value,
        }
        if self.accrual is not None:
            result["accrual"] = self.accrual
        result["uploaded_at"] = _rfc3339(self.uploaded_at)
        return result


def new_order(number: str, user_id: uuid.UUID) -> Order:
    """Create a freshly uploaded order in the NEW state."""
    return Order(number=number, user_id=user_id, status=OrderStatus.NEW)


@dataclass
class Token:
    """Claims carried by an access token."""

    user_id: str
    expires_at: datetime | None = None
    issued_at: datetime | None = None


@dataclass
class User:
    id: uuid.UUID
    username: str
    password_hash: str


@dataclass
class Withdrawal:
    """Points spent against an order."""

    order: str
    sum: float
    processed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "sum": self.sum,
            "processed_at": _rfc3339(self.processed_at),
        }


class GophermartError(Exception):
    """Base class of the service's domain errors."""

    default_message = "gophermart error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class UnknownInternalError(GophermartError):
    default_message = "unknown internal error"


class UserAlreadyExistsError(GophermartError):
    default_message = "user is already exist"


class InsufficientFundsError(GophermartError):
    default_message = "unsufficient funds"


class OrderAlreadyUploadedError(GophermartError):
    default_message = "order has been already uploaded earlier"


class OrderUploadedByAnotherUserError(GophermartError):
    default_message = "order was uploaded by another user"


class InvalidOrderNumberError(GophermartError):
    default_message = "order number is invalid"
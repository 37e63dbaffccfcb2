"""Conversions between stored numeric/timestamp values and domain models."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from gophermart.model import Balance, Withdrawal


def numeric_to_float(value: Any) -> float:
    """Return the stored number as a float; missing or unreadable values become 0.0."""
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError, ArithmeticError):
        return 0.0


def float_to_numeric(value: float) -> Decimal:
    """Return the amount as a decimal rounded to two places."""
    return Decimal(f"{value:.2f}")


def _to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        moment = value
    else:
        text = value.decode() if isinstance(value, bytes) else str(value)
        text = text.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment is not None and moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def balance_from_row(balance: Any, withdrawn: Any) -> Balance:
    """Build a balance from the stored current and withdrawn amounts."""
    return Balance(current=numeric_to_float(balance), withdrawn=numeric_to_float(withdrawn))


def withdrawal_from_row(order_number: str, withdrawn: Any, processed_at: Any) -> Withdrawal:
    """Build a withdrawal from a stored history row."""
    return Withdrawal(
        order=order_number,
        sum=numeric_to_float(withdrawn),
        processed_at=_to_datetime(processed_at),
    )


def order_numeric_to_float(value: Any) -> float:
    """Return an order's stored accrual as a float, 0.0 when absent."""
    return numeric_to_float(value)


def order_float_to_numeric(value: float | None) -> Decimal | None:
    """Return an order's accrual rounded to two places, or None when there is none."""
    if value is None:
        return None
    return float_to_numeric(value)
"""Luhn checksum validation of order numbers."""

_DIGITS = frozenset("0123456789")


def validate(number: str) -> bool:
    """Return True if the string is all decimal digits and passes the Luhn check."""
    if not number or not set(number) <= _DIGITS:
        return False

    digits = [int(char) for char in number]
    parity = len(digits) % 2
    total = 0
    for index, digit in enumerate(digits[:-1]):
        if index % 2 != parity:
            total += digit
        elif digit > 4:
            total += 2 * digit - 9
        else:
            total += 2 * digit

    return digits[-1] == (10 - total % 10) % 10
"""Loyalty points service: accounts, Luhn-checked order uploads, accrual polling and withdrawals over HTTP."""

__version__ = "0.1.0"
"""Exception types shared across the checkout client."""

from __future__ import annotations

from typing import Any


class CheckoutError(Exception):
    """Base class for checkout client errors."""


class GatewayError(CheckoutError):
    """The order API could not be reached or answered with an error status."""

    def __init__(self, status: int, message: str, errors: Any = None) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.errors = errors

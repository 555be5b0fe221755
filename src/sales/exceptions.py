"""Exceptions raised by the sales domain.

Request validation problems use Protean's ``ValidationError`` and unknown
records use ``ObjectNotFoundError``; the classes below cover the remaining
cases the HTTP layer maps to distinct status codes.
"""

from protean.exceptions import ValidationError


class InvalidTransitionError(ValidationError):
    """An order status or payment status change that the lifecycle forbids."""


class ConfigurationError(Exception):
    """Shipping configuration that cannot price a cart (no matching tier)."""


class UnauthorizedError(Exception):
    """The request carries no authenticated requester."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


class ForbiddenError(Exception):
    """The requester is authenticated but may not act on the resource."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)
        self.message = message

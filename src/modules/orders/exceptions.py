"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
Callers (an API layer, an admin command) catch these and translate
them into appropriate responses.
"""

from __future__ import annotations

from typing import Optional


class OrderNotFound(Exception):
    """The requested order does not exist."""


class OrderPartNotFound(Exception):
    """The requested order part (admin or vendor sub-order) does not exist."""


class InvalidOrderStatus(Exception):
    """An invalid status transition was attempted."""


class StatusChangeNotAllowed(Exception):
    """The acting role may not change an order in its current status."""


class OrderNotSplittable(Exception):
    """The order is not a mixed order, or its status forbids splitting."""


class OrderAlreadySplit(Exception):
    """The mixed order has already been split into parts."""


class OrderNotForwardable(Exception):
    """The order or part cannot be forwarded to a vendor."""


class OrderAccessDenied(Exception):
    """The supplied customer email does not match the order."""


class UnknownOrderStatus(Exception):
    """A stored status string has no canonical equivalent."""

    def __init__(self, message: str, raw_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_status = raw_status

"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist."""


class OrderAlreadyExists(Exception):
    """An order with the same order number was already created."""


class YardEntryNotFound(Exception):
    """The order has no yard entry at the requested index."""


class ValidationError(Exception):
    """A required field is missing or malformed on a mutating call."""

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}


class InvalidTransition(Exception):
    """The requested status is not reachable from the current status."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot transition from {current} to {target}.")
        self.current = current
        self.target = target


class ConcurrencyConflict(Exception):
    """A competing mutation on the same order was committed first.

    The caller should re-fetch the order and retry with a fresh snapshot.
    """

    def __init__(self, order_number: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Order {order_number} was modified concurrently "
            f"(expected version {expected}, found {actual})."
        )
        self.order_number = order_number
        self.expected = expected
        self.actual = actual

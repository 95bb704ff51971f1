# Overview: Domain error taxonomy shared by services and routes.

"""
Errors raised by the stock ledger and payment reconciliation services.

- InvariantViolation: the mutation would break a domain invariant. Raised
  before anything is written. Callers surface it as a validation failure.
- NotFoundError: an item, purchase, supplier or payment index does not resolve.
- StorageFailure: the database call itself failed after concurrency retries.
"""


class InvariantViolation(ValueError):
    """400-level domain rule violation; nothing was written."""


class InsufficientStockError(InvariantViolation):
    """Raised when an adjustment would drive on-hand quantity below zero."""

    def __init__(self, item_id: str, quantity, delta):
        self.item_id = item_id
        self.quantity = quantity
        self.delta = delta
        super().__init__("Cannot reduce stock below zero")


class PaymentAmountInvalidError(InvariantViolation):
    """Raised when a payment amount is not strictly positive."""


class NotFoundError(LookupError):
    """404-level missing record."""

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class StorageFailure(RuntimeError):
    """The underlying store call failed; the session has been rolled back."""

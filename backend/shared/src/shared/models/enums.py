"""Enumeration types for payment relay data models."""

from enum import Enum


class InvoiceStatus(str, Enum):
    """Invoice statuses the relay reads or writes.

    Stored records may carry other values. Moves toward PAID only; nothing
    in the relay writes PENDING over PAID.
    """

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class ProcessingResult(str, Enum):
    """Outcome of processing one webhook delivery."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"

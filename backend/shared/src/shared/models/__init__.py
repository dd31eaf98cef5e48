"""Pydantic models for payment relay data entities."""

from .enums import InvoiceStatus, ProcessingResult
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    STRIPE_ERROR_MESSAGES,
    BodyUnavailable,
    ConfigurationError,
    ErrorCode,
    ErrorResponse,
    InvalidEventPayload,
    MalformedContentType,
    PayloadTooLarge,
    RelayError,
    SignatureError,
    get_user_friendly_stripe_message,
)
from .events import (
    CheckoutCompleted,
    EventMetadata,
    InboundEvent,
    PaymentSucceeded,
    UnhandledEvent,
    decode_event,
    parse_event,
)
from .invoice import Invoice, InvoiceItem, InvoiceState, PaymentInfo

__all__ = [
    # Enums
    "InvoiceStatus",
    "ProcessingResult",
    # Invoice
    "Invoice",
    "InvoiceItem",
    "InvoiceState",
    "PaymentInfo",
    # Events
    "CheckoutCompleted",
    "EventMetadata",
    "InboundEvent",
    "PaymentSucceeded",
    "UnhandledEvent",
    "decode_event",
    "parse_event",
    # Errors
    "BodyUnavailable",
    "ConfigurationError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "InvalidEventPayload",
    "MalformedContentType",
    "PayloadTooLarge",
    "RelayError",
    "SignatureError",
    "STRIPE_ERROR_MESSAGES",
    "get_user_friendly_stripe_message",
]

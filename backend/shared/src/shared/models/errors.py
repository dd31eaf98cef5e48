"""Standard error codes for the payment relay.

All services and routes use these error codes for consistent error responses.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes returned in every error response."""

    # Request error codes (ERR_REQ_001-ERR_REQ_006)
    MISSING_FIELD = "ERR_REQ_001"
    INVALID_AMOUNT = "ERR_REQ_002"
    INVALID_JSON_BODY = "ERR_REQ_003"
    PAYLOAD_TOO_LARGE = "ERR_REQ_004"
    MALFORMED_CONTENT_TYPE = "ERR_REQ_005"
    BODY_UNAVAILABLE = "ERR_REQ_006"

    # Invoice error codes (ERR_INV_001-ERR_INV_002)
    INVOICE_NOT_FOUND = "ERR_INV_001"
    INVOICE_ALREADY_PAID = "ERR_INV_002"

    # Stripe/Payment error codes (ERR_STRIPE_001-ERR_STRIPE_004)
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"
    STRIPE_API_ERROR = "ERR_STRIPE_002"
    INVALID_EVENT_PAYLOAD = "ERR_STRIPE_003"
    WEBHOOK_PROCESSING_FAILED = "ERR_STRIPE_004"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Request errors
    ErrorCode.MISSING_FIELD: "A required field is missing",
    ErrorCode.INVALID_AMOUNT: "The payment amount is missing or invalid",
    ErrorCode.INVALID_JSON_BODY: "Request body is not a valid JSON object",
    ErrorCode.PAYLOAD_TOO_LARGE: "Request body exceeds the maximum allowed size",
    ErrorCode.MALFORMED_CONTENT_TYPE: "Unsupported or malformed Content-Type",
    ErrorCode.BODY_UNAVAILABLE: "Raw body required for signature verification",
    # Invoice errors
    ErrorCode.INVOICE_NOT_FOUND: "Invoice not found",
    ErrorCode.INVOICE_ALREADY_PAID: "Invoice is already paid",
    # Stripe errors
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.STRIPE_API_ERROR: "Stripe API error occurred",
    ErrorCode.INVALID_EVENT_PAYLOAD: "Webhook event payload could not be decoded",
    ErrorCode.WEBHOOK_PROCESSING_FAILED: "Error processing webhook",
}

# Recovery suggestions for API clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    # Request error recovery
    ErrorCode.MISSING_FIELD: "Include the missing field and try again",
    ErrorCode.INVALID_AMOUNT: "Check the invoice items and total",
    ErrorCode.INVALID_JSON_BODY: "Send a JSON object body",
    ErrorCode.PAYLOAD_TOO_LARGE: "Reduce the request body size",
    ErrorCode.MALFORMED_CONTENT_TYPE: "Send the body with Content-Type: application/json",
    ErrorCode.BODY_UNAVAILABLE: "Send the unmodified event body",
    # Invoice error recovery
    ErrorCode.INVOICE_NOT_FOUND: "Verify the invoice ID",
    ErrorCode.INVOICE_ALREADY_PAID: "No payment is needed for this invoice",
    # Stripe error recovery
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.STRIPE_API_ERROR: "Try again or contact support",
    ErrorCode.INVALID_EVENT_PAYLOAD: "Check the webhook endpoint configuration",
    ErrorCode.WEBHOOK_PROCESSING_FAILED: "The event will be redelivered",
}


class ErrorResponse(BaseModel):
    """Standard error response body.

    Every failed request is answered with this format.
    """

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class RelayError(Exception):
    """Exception raised by relay operations.

    Converted to an ErrorResponse at the request boundary.
    """

    default_code: Optional[ErrorCode] = None

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, str]] = None,
    ):
        resolved = code or self.default_code
        if resolved is None:
            raise TypeError(f"{type(self).__name__} requires an error code")
        self.code = resolved
        self.message = ERROR_MESSAGES[resolved]
        self.recovery = ERROR_RECOVERY[resolved]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)


class SignatureError(RelayError):
    """Webhook signature could not be verified; the payload is untrusted."""

    default_code = ErrorCode.INVALID_WEBHOOK_SIGNATURE


class InvalidEventPayload(RelayError):
    """Signature verified but the event document could not be decoded."""

    default_code = ErrorCode.INVALID_EVENT_PAYLOAD


class PayloadTooLarge(RelayError):
    default_code = ErrorCode.PAYLOAD_TOO_LARGE


class MalformedContentType(RelayError):
    default_code = ErrorCode.MALFORMED_CONTENT_TYPE


class BodyUnavailable(RelayError):
    """The raw request bytes were not captured before the body was consumed."""

    default_code = ErrorCode.BODY_UNAVAILABLE


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing."""


# Stripe error code to user-friendly message mapping
STRIPE_ERROR_MESSAGES: dict[str, str] = {
    "amount_too_small": "The payment amount is below the processor minimum.",
    "amount_too_large": "The payment amount exceeds the processor maximum.",
    "invalid_currency": "The invoice currency is not supported.",
    "api_key_expired": "Payment processor credentials have expired.",
    "rate_limit": "Too many requests. Please wait a moment and try again.",
    "processing_error": "A processing error occurred. Please try again.",
}


def get_user_friendly_stripe_message(
    stripe_error_code: Optional[str],
    default_message: str = "Payment session could not be created. Please try again.",
) -> str:
    """Get a user-friendly message for a Stripe error code.

    Args:
        stripe_error_code: The Stripe error code (e.g., 'amount_too_small').
        default_message: Message to use if error code is unknown.

    Returns:
        User-friendly error message.
    """
    if stripe_error_code and stripe_error_code in STRIPE_ERROR_MESSAGES:
        return STRIPE_ERROR_MESSAGES[stripe_error_code]
    return default_message

"""FastAPI exception handlers for converting RelayError to HTTP responses.

This module converts domain errors (RelayError) to HTTP responses with the
ErrorResponse JSON structure.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: Malformed requests, rejected signatures, paid invoices
- 404 Not Found: Unknown invoice
- 413 Payload Too Large: Body over the configured limit
- 415 Unsupported Media Type: Malformed Content-Type
- 500 Internal Server Error: Stripe or store failures

Usage:
    Register handlers in FastAPI app:

    from api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_413_CONTENT_TOO_LARGE,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from shared.models.errors import ErrorCode, RelayError
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Request errors -> 400 Bad Request
    ErrorCode.MISSING_FIELD: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_AMOUNT: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_JSON_BODY: HTTP_400_BAD_REQUEST,
    ErrorCode.BODY_UNAVAILABLE: HTTP_400_BAD_REQUEST,
    ErrorCode.PAYLOAD_TOO_LARGE: HTTP_413_CONTENT_TOO_LARGE,
    ErrorCode.MALFORMED_CONTENT_TYPE: HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    # Invoice errors
    ErrorCode.INVOICE_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.INVOICE_ALREADY_PAID: HTTP_400_BAD_REQUEST,
    # Webhook input errors -> 400 so Stripe reports the delivery as failed
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_EVENT_PAYLOAD: HTTP_400_BAD_REQUEST,
    # Server-side failures -> 500; Stripe retries webhook deliveries
    ErrorCode.STRIPE_API_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.WEBHOOK_PROCESSING_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode.

    Args:
        code: The ErrorCode to map

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Handle RelayError exceptions and convert to JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The RelayError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s: %s", exc.code.value, request.url.path, exc.message)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    Internal details are logged, never returned to the client.
    """
    logger.exception("Unhandled exception: %s", exc)

    error_response = {
        "success": False,
        "error_code": "ERR_INTERNAL",
        "message": "An unexpected error occurred",
        "recovery": "Please try again later or contact support",
        "details": None,
    }

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RelayError, relay_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

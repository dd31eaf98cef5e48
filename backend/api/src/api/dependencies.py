"""FastAPI dependency injection providers.

Services are built once in ``api.main.create_app`` and stored on
``app.state``; these providers hand them to routes. Tests build an app with
fakes via ``create_app(stripe_service=..., invoice_store=...)`` instead of
patching module globals.

Usage in routes:
    from api.dependencies import get_payment_service

    @router.post("/checkout-sessions")
    def create_checkout_session(
        payments: PaymentService = Depends(get_payment_service),
    ):
        ...

Service Dependency Graph:
    RelaySettings
        ├── StripeService
        └── DynamoDBInvoiceStore
    PaymentService(store, stripe, settings)
    WebhookHandler(verifier=stripe, store)
"""

from typing import Any

from fastapi import Request

from api.middleware.raw_body import PARSED_BODY_KEY, RAW_BODY_KEY
from shared.models.errors import BodyUnavailable, MalformedContentType
from shared.services.payment_service import PaymentService
from shared.services.webhook_handler import WebhookHandler


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_webhook_handler(request: Request) -> WebhookHandler:
    return request.app.state.webhook_handler


def get_raw_body(request: Request) -> bytes:
    """Raw request bytes captured by RawBodyMiddleware.

    Raises:
        BodyUnavailable: If the capture layer did not run for this request.
    """
    raw_body = getattr(request.state, RAW_BODY_KEY, None)
    if raw_body is None:
        raise BodyUnavailable(details={"message": "Request body was not captured"})
    return raw_body


def get_parsed_body(request: Request) -> dict[str, Any]:
    """Decoded JSON object body.

    Raises:
        MalformedContentType: If the request was not sent as JSON.
    """
    parsed_body = getattr(request.state, PARSED_BODY_KEY, None)
    if parsed_body is None:
        raise MalformedContentType(
            details={"message": "Expected Content-Type: application/json"}
        )
    return parsed_body

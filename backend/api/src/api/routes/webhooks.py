"""Webhook endpoint for Stripe events.

Handles:
- checkout.session.completed
- payment_intent.succeeded

Any other event type is acknowledged without side effects.

This endpoint does not require authentication: the payload is signed by
Stripe and verified over the raw bytes captured by ``RawBodyMiddleware``.
The body is never decoded before the signature is checked.
"""

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_raw_body, get_webhook_handler
from api.models.common import ErrorResponse
from api.models.webhooks import WebhookResponse
from shared.models.errors import BodyUnavailable
from shared.services.webhook_handler import WebhookHandler
from shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

WEBHOOK_PATH = "/webhook"
STRIPE_SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    WEBHOOK_PATH,
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- checkout.session.completed: marks the invoice paid
- payment_intent.succeeded: marks the invoice paid

**No authentication required** - signature is verified using the Stripe
webhook secret over the exact request bytes.

**Idempotent**: a redelivered event returns 200 with the `duplicate` result
and leaves the invoice unchanged. An event that matches no invoice returns
200 with `not_found`.
""",
    response_model=WebhookResponse,
    responses={
        200: {
            "description": "Event received and processed (or acknowledged)",
            "model": WebhookResponse,
        },
        400: {
            "description": "Invalid signature, missing header or empty body",
            "model": ErrorResponse,
        },
        500: {
            "description": "Invoice store failure; Stripe will retry",
            "model": ErrorResponse,
        },
    },
)
def handle_stripe_webhook(
    request: Request,
    raw_body: bytes = Depends(get_raw_body),
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse:
    """Handle incoming Stripe webhook events."""
    if not raw_body:
        logger.warning("Webhook request with empty body")
        raise BodyUnavailable(details={"message": "Empty webhook body"})

    signature = request.headers.get(STRIPE_SIGNATURE_HEADER)
    result = handler.handle(raw_body, signature)
    return WebhookResponse.from_result(result)

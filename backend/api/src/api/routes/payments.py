"""Payment endpoints for starting Stripe payments.

Provides REST endpoints for:
- Creating hosted checkout sessions for stored invoices or one-off amounts
- Creating PaymentIntents for client-side confirmation

Payment confirmation arrives later through the Stripe webhook; nothing here
marks an invoice paid.
"""

from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_parsed_body, get_payment_service
from api.models.common import ErrorResponse, validate_body
from api.models.payments import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    InvoiceRequest,
    PaymentIntentResponse,
)
from shared.models.errors import ErrorCode, RelayError
from shared.services.payment_service import PaymentService

router = APIRouter(tags=["payments"])

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"description": "Missing field, invalid amount or invoice already paid", "model": ErrorResponse},
    404: {"description": "Invoice not found", "model": ErrorResponse},
    500: {"description": "Stripe API error", "model": ErrorResponse},
}


@router.post(
    "/checkout-sessions",
    summary="Create checkout session",
    description="""
Create a Stripe-hosted checkout session.

**Body:** either `{invoiceId}` for a stored invoice, or
`{description, amount, currency?}` for a one-off payment.

**Notes:**
- Invoice amounts come from the stored invoice, never the client
- The session carries `metadata.invoiceId` so the webhook can settle the invoice
- Redirect the customer to the returned `url`
""",
    response_model=CheckoutSessionResponse,
    responses=_ERROR_RESPONSES,
)
@router.post(
    "/create-checkout-for-invoice",
    response_model=CheckoutSessionResponse,
    include_in_schema=False,
)
def create_checkout_session(
    body: dict[str, Any] = Depends(get_parsed_body),
    payments: PaymentService = Depends(get_payment_service),
) -> CheckoutSessionResponse:
    """Create a checkout session for an invoice or a one-off amount."""
    request = validate_body(CheckoutSessionRequest, body)

    if request.invoice_id:
        session = payments.create_checkout_for_invoice(request.invoice_id)
    else:
        if not request.description:
            raise RelayError(code=ErrorCode.MISSING_FIELD, details={"field": "invoiceId"})
        if request.amount is None:
            raise RelayError(code=ErrorCode.INVALID_AMOUNT, details={"field": "amount"})
        session = payments.create_adhoc_checkout(
            request.description, request.amount, request.currency
        )

    return CheckoutSessionResponse(url=session["url"], session_id=session["session_id"])


@router.post(
    "/payment-intents",
    summary="Create payment intent",
    description="""
Create a Stripe PaymentIntent for a stored invoice.

Returns the `clientSecret` for confirming the payment with Stripe.js. The
invoice is marked paid when `payment_intent.succeeded` is delivered.
""",
    response_model=PaymentIntentResponse,
    responses=_ERROR_RESPONSES,
)
def create_payment_intent(
    body: dict[str, Any] = Depends(get_parsed_body),
    payments: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    request = validate_body(InvoiceRequest, body)
    intent = payments.create_payment_intent(request.invoice_id)
    return PaymentIntentResponse(
        client_secret=intent["client_secret"],
        payment_intent_id=intent["payment_intent_id"],
    )

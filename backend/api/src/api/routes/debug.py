"""Debug endpoints for local testing.

Only mounted when ``ENABLE_DEBUG_ROUTES`` is set. These bypass Stripe
entirely and must never be enabled in production.
"""

from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_parsed_body, get_payment_service
from api.models.common import ErrorResponse, OkResponse, validate_body
from api.models.payments import InvoiceRequest
from shared.services.payment_service import PaymentService
from shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


@router.post(
    "/mark-paid",
    summary="Mark invoice paid",
    description="Mark an invoice paid without a Stripe confirmation.",
    response_model=OkResponse,
    responses={
        400: {"description": "Missing invoiceId", "model": ErrorResponse},
        404: {"description": "Invoice not found", "model": ErrorResponse},
    },
)
def mark_paid(
    body: dict[str, Any] = Depends(get_parsed_body),
    payments: PaymentService = Depends(get_payment_service),
) -> OkResponse:
    request = validate_body(InvoiceRequest, body)
    logger.warning("Marking invoice %s paid via debug route", request.invoice_id)
    payments.mark_paid(request.invoice_id)
    return OkResponse()

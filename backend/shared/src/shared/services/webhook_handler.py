"""Webhook handler for settling invoices from Stripe events.

Provides the business logic for webhook deliveries separate from HTTP
routing concerns:

1. verify the signature over the raw body (via the injected verifier)
2. dispatch on the decoded event
3. resolve the invoice: metadata ``invoiceId`` first, then the secondary
   index on the provider reference
4. apply the paid state

Stripe delivers at least once, so applying an event is idempotent: a
redelivery of an already-applied confirmation leaves the invoice untouched.
A store failure raises WEBHOOK_PROCESSING_FAILED so Stripe retries; an
invoice that cannot be found is acknowledged, since retrying cannot help.
"""

import datetime as dt
from collections.abc import Callable
from typing import Union, assert_never

from pydantic import BaseModel

from shared.models.enums import InvoiceStatus, ProcessingResult
from shared.models.errors import ErrorCode, RelayError
from shared.models.events import (
    CheckoutCompleted,
    InboundEvent,
    PaymentSucceeded,
    UnhandledEvent,
)
from shared.models.invoice import InvoiceState
from shared.utils.logging import get_logger, log_webhook_event

from .invoice_store import InvoiceStoreError
from .protocols import InvoiceStore, PaymentVerifier

logger = get_logger(__name__)

SettlementEvent = Union[CheckoutCompleted, PaymentSucceeded]


class WebhookResult(BaseModel):
    """Outcome of one webhook delivery."""

    event_id: str | None = None
    event_type: str
    processing_result: ProcessingResult
    invoice_id: str | None = None
    message: str | None = None


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class WebhookHandler:
    """Processes verified Stripe events into invoice updates."""

    def __init__(
        self,
        verifier: PaymentVerifier,
        store: InvoiceStore,
        clock: Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        """Initialize webhook handler.

        Args:
            verifier: Verifies signatures and decodes events
            store: Invoice store
            clock: Source of the paid_at/updated_at timestamps
        """
        self._verifier = verifier
        self._store = store
        self._clock = clock

    def handle(self, payload: bytes, signature: str | None) -> WebhookResult:
        """Verify and process one delivery.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            WebhookResult describing what was done

        Raises:
            SignatureError: If verification fails; nothing is processed.
            RelayError: WEBHOOK_PROCESSING_FAILED if the store failed.
        """
        event = self._verifier.verify_webhook(payload, signature)
        return self.process(event)

    def process(self, event: InboundEvent) -> WebhookResult:
        """Dispatch a verified event."""
        if isinstance(event, UnhandledEvent):
            log_webhook_event(logger, event.type, event.event_id, result="skipped")
            return WebhookResult(
                event_id=event.event_id,
                event_type=event.type,
                processing_result=ProcessingResult.SKIPPED,
                message=f"Event type '{event.type}' not handled",
            )
        if isinstance(event, (CheckoutCompleted, PaymentSucceeded)):
            try:
                return self._settle(event)
            except InvoiceStoreError as e:
                log_webhook_event(
                    logger,
                    event.kind,
                    event.event_id,
                    invoice_id=event.metadata.invoice_id,
                    result="error",
                    error=str(e),
                )
                raise RelayError(
                    code=ErrorCode.WEBHOOK_PROCESSING_FAILED,
                    details={"event_id": event.event_id or ""},
                ) from e
        assert_never(event)

    def _settle(self, event: SettlementEvent) -> WebhookResult:
        result = WebhookResult(
            event_id=event.event_id,
            event_type=event.kind,
            processing_result=ProcessingResult.SUCCESS,
        )

        # Delayed payment methods complete the session before the money moves
        if isinstance(event, CheckoutCompleted) and event.payment_status == "unpaid":
            log_webhook_event(
                logger,
                event.kind,
                event.event_id,
                invoice_id=event.metadata.invoice_id,
                result="skipped",
            )
            result.processing_result = ProcessingResult.SKIPPED
            result.message = "Checkout session completed without payment"
            return result

        invoice = self.resolve_invoice(event)
        if invoice is None:
            log_webhook_event(
                logger,
                event.kind,
                event.event_id,
                invoice_id=event.metadata.invoice_id,
                result="not_found",
                provider_reference=event.provider_reference,
            )
            result.invoice_id = event.metadata.invoice_id
            result.processing_result = ProcessingResult.NOT_FOUND
            result.message = "No matching invoice"
            return result

        result.invoice_id = invoice.invoice_id
        if self.is_already_applied(invoice, event):
            log_webhook_event(
                logger, event.kind, event.event_id,
                invoice_id=invoice.invoice_id, result="duplicate",
            )
            result.processing_result = ProcessingResult.DUPLICATE
            result.message = "Payment already applied"
            return result

        if self.apply_payment(invoice, event) is None:
            result.processing_result = ProcessingResult.NOT_FOUND
            result.message = "Invoice removed before update"
            return result

        log_webhook_event(
            logger, event.kind, event.event_id,
            invoice_id=invoice.invoice_id, result="success",
        )
        return result

    def resolve_invoice(self, event: SettlementEvent) -> InvoiceState | None:
        """Find the invoice an event refers to.

        ``metadata.invoiceId`` wins when present; the secondary index on the
        provider reference is only consulted without it.

        Returns:
            The invoice, or None if no invoice matches
        """
        invoice_id = event.metadata.invoice_id
        if invoice_id:
            item = self._store.get_invoice(invoice_id)
            if not item:
                logger.warning("Invoice %s from event metadata not found", invoice_id)
                return None
            return InvoiceState.model_validate(item)

        logger.info(
            "metadata.invoiceId absent, looking up invoice by %s=%s",
            event.lookup_field,
            event.provider_reference,
        )
        matches = self._store.find_invoices_by_field(
            event.lookup_field, event.provider_reference, limit=1
        )
        if not matches:
            return None
        return InvoiceState.model_validate(matches[0])

    @staticmethod
    def is_already_applied(invoice: InvoiceState, event: SettlementEvent) -> bool:
        """True if this payment is already recorded on the invoice."""
        info = invoice.payment_info
        if not invoice.is_paid or info is None:
            return False
        if isinstance(event, CheckoutCompleted):
            return info.provider_session_id == event.session_id
        return info.payment_intent_id == event.payment_intent_id

    def apply_payment(self, invoice: InvoiceState, event: SettlementEvent) -> dict | None:
        """Write the paid state for an event.

        ``paid_at`` keeps its first value, so concurrent or repeated
        deliveries converge on the same record.

        Returns:
            The updated invoice document, or None if it no longer exists
        """
        now = self._clock().isoformat()
        fields = {
            "status": InvoiceStatus.PAID.value,
            "paid_at": now,
            "payment_info": event.payment_info().model_dump(),
            "updated_at": now,
        }
        if event.payment_intent_id:
            fields["provider_payment_intent_id"] = event.payment_intent_id

        return self._store.update_invoice(
            invoice.invoice_id, fields, keep_existing=("paid_at",)
        )

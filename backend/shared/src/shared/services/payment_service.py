"""Payment service for starting Stripe payments on invoices.

Translates one stored invoice into one outbound Stripe call and records
the resulting references on the invoice. Confirmation happens later, in
the webhook handler.
"""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from shared.models.enums import InvoiceStatus
from shared.models.errors import ErrorCode, RelayError, get_user_friendly_stripe_message
from shared.models.invoice import Invoice
from shared.utils.logging import get_logger, log_payment_operation

from .pricing import build_line_items, line_items_total, price_line_item, to_minor_units
from .stripe_service import StripeService, StripeServiceError

if TYPE_CHECKING:
    from shared.config import RelaySettings

    from .protocols import InvoiceStore

logger = get_logger(__name__)

# Invoice fields that feed the charged amount
AMOUNT_FIELDS = frozenset({"items", "total"})


class PaymentService:
    """Service for creating checkout sessions and payment intents."""

    def __init__(
        self,
        store: "InvoiceStore",
        stripe_service: StripeService,
        settings: "RelaySettings",
    ) -> None:
        """Initialize payment service.

        Args:
            store: Invoice store
            stripe_service: Stripe API wrapper
            settings: Relay settings (redirect URLs, default currency)
        """
        self.store = store
        self.stripe = stripe_service
        self.settings = settings

    def get_invoice(self, invoice_id: str) -> Invoice:
        """Load an invoice for charging.

        Raises:
            RelayError: INVOICE_NOT_FOUND, or INVALID_AMOUNT if the stored
                items or total cannot be priced
        """
        item = self.store.get_invoice(invoice_id)
        if not item:
            raise RelayError(
                code=ErrorCode.INVOICE_NOT_FOUND,
                details={"invoice_id": invoice_id},
            )
        try:
            return Invoice.model_validate(item)
        except ValidationError as e:
            bad = [err for err in e.errors() if err["loc"] and err["loc"][0] in AMOUNT_FIELDS]
            if not bad:
                raise
            raise RelayError(
                code=ErrorCode.INVALID_AMOUNT,
                details={
                    "invoice_id": invoice_id,
                    "field": ".".join(str(part) for part in bad[0]["loc"]),
                },
            ) from e

    def _currency_for(self, invoice: Invoice) -> str:
        return invoice.currency or self.settings.default_currency

    def _stripe_error(self, e: StripeServiceError) -> RelayError:
        return RelayError(
            code=ErrorCode.STRIPE_API_ERROR,
            details={"message": get_user_friendly_stripe_message(e.stripe_error_code)},
        )

    def create_checkout_for_invoice(self, invoice_id: str) -> dict[str, Any]:
        """Create a hosted checkout session for a stored invoice.

        Args:
            invoice_id: Invoice to charge

        Returns:
            Dict with url and session_id

        Raises:
            RelayError: INVOICE_NOT_FOUND, INVOICE_ALREADY_PAID,
                INVALID_AMOUNT or STRIPE_API_ERROR
        """
        invoice = self.get_invoice(invoice_id)
        if invoice.is_paid:
            raise RelayError(
                code=ErrorCode.INVOICE_ALREADY_PAID,
                details={"invoice_id": invoice_id},
            )

        currency = self._currency_for(invoice)
        line_items = build_line_items(invoice, currency)
        amount_cents = line_items_total(line_items)
        if amount_cents <= 0:
            raise RelayError(
                code=ErrorCode.INVALID_AMOUNT,
                details={"invoice_id": invoice_id},
            )

        try:
            session = self.stripe.create_checkout_session(
                line_items=line_items,
                success_url=self.settings.success_url_for(invoice_id),
                cancel_url=self.settings.cancel_url_for(invoice_id),
                metadata={"invoiceId": invoice_id},
            )
        except StripeServiceError as e:
            log_payment_operation(
                logger,
                "create_checkout_session",
                invoice_id=invoice_id,
                amount_cents=amount_cents,
                error=str(e),
            )
            raise self._stripe_error(e) from e

        fields: dict[str, Any] = {
            "checkout_url": session["checkout_url"],
            "provider_session_id": session["session_id"],
            "updated_at": dt.datetime.now(dt.UTC).isoformat(),
        }
        if session.get("payment_intent_id"):
            fields["provider_payment_intent_id"] = session["payment_intent_id"]
        self.store.update_invoice(invoice_id, fields)

        log_payment_operation(
            logger,
            "create_checkout_session",
            invoice_id=invoice_id,
            session_id=session["session_id"],
            amount_cents=amount_cents,
            currency=currency,
        )
        return {"url": session["checkout_url"], "session_id": session["session_id"]}

    def create_adhoc_checkout(
        self,
        description: str,
        amount: Decimal,
        currency: str | None = None,
    ) -> dict[str, Any]:
        """Create a checkout session for a one-off amount with no invoice.

        Args:
            description: Line item description
            amount: Amount in major units
            currency: ISO currency code; defaults to the configured currency

        Returns:
            Dict with url and session_id
        """
        currency = (currency or self.settings.default_currency).lower()
        amount_cents = to_minor_units(amount, currency)
        if amount_cents <= 0:
            raise RelayError(
                code=ErrorCode.INVALID_AMOUNT,
                details={"amount": str(amount)},
            )

        try:
            session = self.stripe.create_checkout_session(
                line_items=[price_line_item(description, amount_cents, currency)],
                success_url=self.settings.success_url_for(None),
                cancel_url=self.settings.cancel_url_for(None),
            )
        except StripeServiceError as e:
            log_payment_operation(
                logger,
                "create_checkout_session",
                amount_cents=amount_cents,
                error=str(e),
            )
            raise self._stripe_error(e) from e

        log_payment_operation(
            logger,
            "create_checkout_session",
            session_id=session["session_id"],
            amount_cents=amount_cents,
            currency=currency,
        )
        return {"url": session["checkout_url"], "session_id": session["session_id"]}

    def create_payment_intent(self, invoice_id: str) -> dict[str, Any]:
        """Create a PaymentIntent for a stored invoice.

        Args:
            invoice_id: Invoice to charge

        Returns:
            Dict with client_secret and payment_intent_id
        """
        invoice = self.get_invoice(invoice_id)
        if invoice.is_paid:
            raise RelayError(
                code=ErrorCode.INVOICE_ALREADY_PAID,
                details={"invoice_id": invoice_id},
            )

        currency = self._currency_for(invoice)
        amount_cents = to_minor_units(invoice.amount_due(), currency)
        if amount_cents <= 0:
            raise RelayError(
                code=ErrorCode.INVALID_AMOUNT,
                details={"invoice_id": invoice_id},
            )

        try:
            intent = self.stripe.create_payment_intent(
                amount_cents=amount_cents,
                currency=currency,
                metadata={"invoiceId": invoice_id},
                description=f"Invoice {invoice_id}",
            )
        except StripeServiceError as e:
            log_payment_operation(
                logger,
                "create_payment_intent",
                invoice_id=invoice_id,
                amount_cents=amount_cents,
                error=str(e),
            )
            raise self._stripe_error(e) from e

        self.store.update_invoice(
            invoice_id,
            {
                "provider_payment_intent_id": intent["payment_intent_id"],
                "updated_at": dt.datetime.now(dt.UTC).isoformat(),
            },
        )

        log_payment_operation(
            logger,
            "create_payment_intent",
            invoice_id=invoice_id,
            session_id=intent["payment_intent_id"],
            amount_cents=amount_cents,
            currency=currency,
        )
        return {
            "client_secret": intent["client_secret"],
            "payment_intent_id": intent["payment_intent_id"],
        }

    def mark_paid(self, invoice_id: str) -> None:
        """Mark an invoice paid without a Stripe confirmation (debug only)."""
        now = dt.datetime.now(dt.UTC).isoformat()
        updated = self.store.update_invoice(
            invoice_id,
            {
                "status": InvoiceStatus.PAID.value,
                "paid_at": now,
                "updated_at": now,
            },
            keep_existing=("paid_at",),
        )
        if updated is None:
            raise RelayError(
                code=ErrorCode.INVOICE_NOT_FOUND,
                details={"invoice_id": invoice_id},
            )
        log_payment_operation(logger, "debug_mark_paid", invoice_id=invoice_id)

"""Capability interfaces the webhook processor depends on.

The processor never reaches for process-wide clients; it is handed a
verifier and a store, which tests replace with fakes.
"""

from typing import Any, Protocol

from shared.models.events import InboundEvent


class PaymentVerifier(Protocol):
    """Verifies a webhook delivery and decodes its event."""

    def verify_webhook(self, payload: bytes, signature: str | None) -> InboundEvent:
        """Return the decoded event, or raise SignatureError."""
        ...


class InvoiceStore(Protocol):
    """Keyed access to invoice documents."""

    def get_invoice(self, invoice_id: str) -> dict[str, Any] | None:
        ...

    def find_invoices_by_field(
        self, field: str, value: str, limit: int = 1
    ) -> list[dict[str, Any]]:
        ...

    def update_invoice(
        self,
        invoice_id: str,
        fields: dict[str, Any],
        *,
        keep_existing: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        """Set ``fields`` on an existing invoice.

        Fields named in ``keep_existing`` are only written when the invoice
        does not have them yet. Returns the updated document, or None when
        the invoice does not exist.
        """
        ...

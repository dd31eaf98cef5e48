"""Invoice model for the records this relay settles."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .enums import InvoiceStatus


class InvoiceItem(BaseModel):
    """A single invoice line.

    Older records store ``desc``/``price``; both spellings are accepted.
    """

    model_config = ConfigDict(extra="ignore")

    description: str = Field(
        default="Item",
        validation_alias=AliasChoices("description", "desc"),
        description="Line item description shown on the checkout page",
    )
    unit_price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("unit_price", "unitPrice", "price"),
        description="Unit price in major currency units",
    )
    quantity: int = Field(default=1, ge=1)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: Any) -> Any:
        return value or "Item"


class PaymentInfo(BaseModel):
    """Confirmation details attached when an invoice is paid."""

    model_config = ConfigDict(extra="ignore")

    provider_session_id: str | None = Field(
        default=None,
        description="Stripe Checkout Session ID (cs_xxx)",
        examples=["cs_test_abc123def456"],
    )
    payment_intent_id: str | None = Field(
        default=None,
        description="Stripe PaymentIntent ID (pi_xxx)",
        examples=["pi_3ABC123DEF456"],
    )
    amount_total: int | None = Field(
        default=None, ge=0, description="Amount charged in minor units"
    )
    currency: str | None = None
    payer_email: str | None = None


class InvoiceState(BaseModel):
    """The parts of an invoice that payment confirmation reads.

    Records are owned by the invoicing application, which may use statuses
    the relay does not know (``draft``, ``sent``, ``overdue``); any string is
    kept as-is and only ``paid`` has meaning here. Items and totals are not
    read, so a malformed line never blocks settling a payment.
    """

    model_config = ConfigDict(extra="ignore")

    invoice_id: str = Field(..., description="Invoice key", examples=["INV-1"])
    status: str = Field(
        default=InvoiceStatus.PENDING.value,
        description="Invoice status; open set owned by the invoicing application",
        examples=["pending", "paid", "overdue"],
    )
    provider_session_id: str | None = None
    provider_payment_intent_id: str | None = None
    payment_info: PaymentInfo | None = None
    paid_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        if isinstance(value, InvoiceStatus):
            return value.value
        return value or InvoiceStatus.PENDING.value

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID.value


class Invoice(InvoiceState):
    """An invoice awaiting (or settled by) a Stripe payment.

    The relay only sets the checkout references and the paid state.
    """

    currency: str | None = Field(
        default=None, description="ISO currency code, lower case"
    )
    items: list[InvoiceItem] = Field(default_factory=list)
    total: Decimal | None = Field(
        default=None,
        ge=0,
        description="Invoice total in major units; derived from items when absent",
    )
    checkout_url: str | None = None

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    def amount_due(self) -> Decimal:
        """Return the amount to charge in major units."""
        if self.total is not None:
            return self.total
        return sum(
            (item.unit_price * item.quantity for item in self.items),
            Decimal("0"),
        )

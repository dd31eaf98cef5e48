"""Inbound webhook events decoded from verified Stripe payloads.

Stripe event documents are mapped onto a closed set of event models.
Any event type the relay does not act on becomes an ``UnhandledEvent``
carrying only its type string, so dispatch can be exhaustive.
"""

import json
from collections.abc import Mapping
from typing import Any, ClassVar, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidEventPayload
from .invoice import PaymentInfo

# Stripe event type -> relay event kind
CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


class EventMetadata(BaseModel):
    """Metadata set by the relay when the session/intent was created."""

    model_config = ConfigDict(extra="ignore")

    invoice_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("invoiceId", "invoice_id"),
    )


class CheckoutCompleted(BaseModel):
    """A hosted checkout session finished."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: Literal["checkout.completed"] = "checkout.completed"
    event_id: str | None = None
    session_id: str
    payment_intent_id: str | None = None
    payment_status: str | None = None
    amount_total: int | None = None
    currency: str | None = None
    payer_email: str | None = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    # Invoice attribute holding this event's provider reference
    lookup_field: ClassVar[str] = "provider_session_id"

    @property
    def provider_reference(self) -> str:
        return self.session_id

    def payment_info(self) -> PaymentInfo:
        return PaymentInfo(
            provider_session_id=self.session_id,
            payment_intent_id=self.payment_intent_id,
            amount_total=self.amount_total,
            currency=self.currency,
            payer_email=self.payer_email,
        )


class PaymentSucceeded(BaseModel):
    """A PaymentIntent was captured."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: Literal["payment.succeeded"] = "payment.succeeded"
    event_id: str | None = None
    payment_intent_id: str
    amount: int | None = None
    currency: str | None = None
    payer_email: str | None = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    lookup_field: ClassVar[str] = "provider_payment_intent_id"

    @property
    def provider_reference(self) -> str:
        return self.payment_intent_id

    def payment_info(self) -> PaymentInfo:
        return PaymentInfo(
            payment_intent_id=self.payment_intent_id,
            amount_total=self.amount,
            currency=self.currency,
            payer_email=self.payer_email,
        )


class UnhandledEvent(BaseModel):
    """Any event type the relay acknowledges without acting on."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: Literal["other"] = "other"
    event_id: str | None = None
    type: str


InboundEvent = Union[CheckoutCompleted, PaymentSucceeded, UnhandledEvent]


def _checkout_fields(obj: Mapping[str, Any]) -> dict[str, Any]:
    customer_details = obj.get("customer_details") or {}
    return {
        "session_id": obj.get("id"),
        "payment_intent_id": obj.get("payment_intent"),
        "payment_status": obj.get("payment_status"),
        "amount_total": obj.get("amount_total"),
        "currency": obj.get("currency"),
        "payer_email": customer_details.get("email") or obj.get("customer_email"),
        "metadata": obj.get("metadata") or {},
    }


def _payment_intent_fields(obj: Mapping[str, Any]) -> dict[str, Any]:
    amount = obj.get("amount_received")
    if amount is None:
        amount = obj.get("amount")
    return {
        "payment_intent_id": obj.get("id"),
        "amount": amount,
        "currency": obj.get("currency"),
        "payer_email": obj.get("receipt_email"),
        "metadata": obj.get("metadata") or {},
    }


def parse_event(document: Mapping[str, Any]) -> InboundEvent:
    """Map a Stripe event document onto the relay's event models.

    Args:
        document: Decoded Stripe event (``{"id", "type", "data": {"object"}}``)

    Returns:
        CheckoutCompleted, PaymentSucceeded or UnhandledEvent

    Raises:
        InvalidEventPayload: If the document lacks the fields its type requires.
    """
    event_type = document.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise InvalidEventPayload(details={"message": "Event type missing"})

    event_id = document.get("id")
    try:
        if event_type == CHECKOUT_COMPLETED:
            obj = (document.get("data") or {}).get("object") or {}
            return CheckoutCompleted.model_validate(
                {"event_id": event_id, **_checkout_fields(obj)}
            )
        if event_type == PAYMENT_INTENT_SUCCEEDED:
            obj = (document.get("data") or {}).get("object") or {}
            return PaymentSucceeded.model_validate(
                {"event_id": event_id, **_payment_intent_fields(obj)}
            )
    except (ValidationError, AttributeError) as e:
        raise InvalidEventPayload(
            details={"event_type": event_type, "message": str(e).splitlines()[0]}
        ) from e

    return UnhandledEvent(event_id=event_id, type=event_type)


def decode_event(payload: bytes) -> InboundEvent:
    """Decode verified webhook bytes into an event model.

    Raises:
        InvalidEventPayload: If the bytes are not a JSON object event.
    """
    try:
        document = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidEventPayload(details={"message": "Event body is not valid JSON"}) from e
    if not isinstance(document, dict):
        raise InvalidEventPayload(details={"message": "Event body is not a JSON object"})
    return parse_event(document)

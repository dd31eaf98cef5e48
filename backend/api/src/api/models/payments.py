"""API models for checkout and payment intent endpoints.

Request fields use the camelCase names browser clients already send
(``invoiceId``); snake_case is accepted as well. Responses serialize with
camelCase aliases.
"""

from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

_INVOICE_ID = AliasChoices("invoiceId", "invoice_id")


class CheckoutSessionRequest(BaseModel):
    """Request to start a hosted checkout.

    Either ``invoiceId`` for a stored invoice, or ``description`` and
    ``amount`` for a one-off payment.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"invoiceId": "INV-1"},
                {"description": "Consulting", "amount": 120.5, "currency": "usd"},
            ]
        },
    )

    invoice_id: str | None = Field(
        default=None,
        validation_alias=_INVOICE_ID,
        min_length=1,
        description="Stored invoice to pay",
    )
    description: str | None = Field(
        default=None,
        min_length=1,
        description="Line item description for a one-off payment",
    )
    amount: Decimal | None = Field(
        default=None,
        gt=0,
        allow_inf_nan=False,
        description="Amount in major currency units",
    )
    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="ISO currency code; defaults to DEFAULT_CURRENCY",
    )


class CheckoutSessionResponse(BaseModel):
    """Hosted checkout session for the client to redirect to."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="Stripe-hosted checkout URL")
    session_id: str = Field(
        ...,
        alias="sessionId",
        description="Stripe checkout session ID",
        examples=["cs_test_123"],
    )


class InvoiceRequest(BaseModel):
    """Request naming a stored invoice."""

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"invoiceId": "INV-1"}]},
    )

    invoice_id: str = Field(..., validation_alias=_INVOICE_ID, min_length=1)


class PaymentIntentResponse(BaseModel):
    """PaymentIntent for client-side confirmation."""

    model_config = ConfigDict(populate_by_name=True)

    client_secret: str = Field(..., alias="clientSecret")
    payment_intent_id: str = Field(
        ...,
        alias="paymentIntentId",
        examples=["pi_123"],
    )

"""Stripe payment service for checkout sessions, payment intents and webhooks.

Provides integration with Stripe using the v8+ StripeClient pattern.
Credentials are injected at construction; see ``shared.config``.
"""

import logging
from typing import Any

import stripe
from stripe import StripeClient

from shared.models.errors import SignatureError
from shared.models.events import InboundEvent, decode_event

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_TOLERANCE = 300  # Stripe default, seconds


class StripeServiceError(Exception):
    """Raised when a Stripe operation fails."""

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        """Initialize with message and optional Stripe error code.

        Args:
            message: Human-readable error message.
            stripe_error_code: Stripe-specific error code if available.
        """
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


def construct_verified_event(
    payload: bytes,
    signature: str | None,
    secret: str | None,
    tolerance: int = DEFAULT_WEBHOOK_TOLERANCE,
) -> InboundEvent:
    """Verify a Stripe-Signature header over the exact request bytes.

    Stripe signs ``"<timestamp>.<body>"`` with HMAC-SHA256 and sends
    ``t=<timestamp>,v1=<hex>[,v1=<hex>...]``. Verification fails closed:
    nothing in ``payload`` is decoded until the signature matches.

    Args:
        payload: Raw request body bytes, exactly as received.
        signature: Stripe-Signature header value.
        secret: Webhook signing secret (whsec_...).
        tolerance: Maximum age of the signed timestamp, in seconds.

    Returns:
        The decoded event.

    Raises:
        SignatureError: If the secret, header or body is missing, or the
            signature does not match within the tolerance.
        InvalidEventPayload: If the signed body is not a Stripe event.
    """
    if not secret:
        logger.error("Webhook signing secret is not configured")
        raise SignatureError(details={"message": "Webhook secret not configured"})
    if not signature:
        raise SignatureError(details={"message": "Missing Stripe-Signature header"})
    if not payload:
        raise SignatureError(details={"message": "Empty webhook body"})

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning("Webhook body is not UTF-8 (raw body length: %d)", len(payload))
        raise SignatureError(details={"message": "Webhook body is not UTF-8"}) from e

    try:
        stripe.WebhookSignature.verify_header(text, signature, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning(
            "Webhook signature verification failed: %s (raw body length: %d)",
            e.user_message or str(e),
            len(payload),
        )
        raise SignatureError(details={"message": "Invalid webhook signature"}) from e

    return decode_event(payload)


class StripeService:
    """Service for Stripe payment operations.

    Handles:
    - Checkout session creation
    - PaymentIntent creation
    - Webhook signature validation

    Usage:
        stripe_svc = StripeService(secret_key="sk_test_...", webhook_secret="whsec_...")
        session = stripe_svc.create_checkout_session(
            line_items=[...],
            success_url="https://example.com/success",
            cancel_url="https://example.com/cancel",
            metadata={"invoiceId": "INV-1"},
        )
    """

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str | None = None,
        *,
        webhook_tolerance: int = DEFAULT_WEBHOOK_TOLERANCE,
        client: StripeClient | None = None,
    ) -> None:
        """Initialize Stripe service.

        Args:
            secret_key: Stripe secret API key.
            webhook_secret: Webhook signing secret; webhooks are rejected without it.
            webhook_tolerance: Signature timestamp tolerance in seconds.
            client: Pre-built client (tests); created lazily otherwise.
        """
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._webhook_tolerance = webhook_tolerance
        self._client = client

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization)."""
        if self._client is None:
            self._client = StripeClient(self._secret_key)
            logger.info("Stripe client initialized")
        return self._client

    def create_checkout_session(
        self,
        *,
        line_items: list[dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str] | None = None,
        customer_email: str | None = None,
    ) -> dict[str, Any]:
        """Create a Stripe Checkout session.

        Args:
            line_items: Stripe ``line_items`` with inline ``price_data``.
            success_url: URL to redirect on success.
            cancel_url: URL to redirect on cancel.
            metadata: Metadata echoed back on the completion event.
            customer_email: Optional customer email for Stripe receipt.

        Returns:
            Dict with session details:
                - session_id: Stripe checkout session ID
                - checkout_url: URL to redirect user
                - payment_intent_id: PaymentIntent ID if already assigned

        Raises:
            StripeServiceError: If session creation fails.
        """
        client = self._get_client()

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata or {},
            # Copy metadata onto the PaymentIntent so its events resolve directly
            "payment_intent_data": {"metadata": metadata or {}},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = client.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe checkout session creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to create checkout session: {e}",
                stripe_error_code=error_code,
            ) from e

        logger.info("Checkout session created: %s", session.id)

        return {
            "session_id": session.id,
            # Older API versions omit url on the create response
            "checkout_url": session.url or f"https://checkout.stripe.com/pay/{session.id}",
            "payment_intent_id": session.payment_intent,
        }

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str] | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Create a PaymentIntent for client-side confirmation.

        Args:
            amount_cents: Amount in minor units.
            currency: ISO currency code.
            metadata: Metadata echoed back on the success event.
            description: Optional description shown in the dashboard.

        Returns:
            Dict with payment_intent_id and client_secret.

        Raises:
            StripeServiceError: If creation fails.
        """
        client = self._get_client()

        params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "metadata": metadata or {},
            "automatic_payment_methods": {"enabled": True},
        }
        if description:
            params["description"] = description

        try:
            intent = client.payment_intents.create(params=params)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe PaymentIntent creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to create payment intent: {e}",
                stripe_error_code=error_code,
            ) from e

        logger.info("PaymentIntent created: %s", intent.id)

        return {
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
        }

    def verify_webhook(self, payload: bytes, signature: str | None) -> InboundEvent:
        """Verify a webhook signature and decode the event.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.

        Returns:
            Decoded inbound event.

        Raises:
            SignatureError: If the signature is invalid.
        """
        event = construct_verified_event(
            payload,
            signature,
            self._webhook_secret,
            tolerance=self._webhook_tolerance,
        )
        logger.info("Webhook signature verified for event: %s", event.event_id)
        return event

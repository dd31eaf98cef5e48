"""Unit tests for Stripe webhook signature verification.

Signatures are computed here with HMAC-SHA256 exactly as Stripe does, and
verified through the stripe library; no Stripe API calls are made.

Test categories:
- Valid signatures
- Tampered or re-serialized bodies
- Missing secret, header or body
- Timestamp tolerance
- Header format edge cases
"""

import hashlib
import hmac
import json
import time
from typing import Any

import pytest

from shared.models.errors import ErrorCode, InvalidEventPayload, SignatureError
from shared.models.events import CheckoutCompleted, UnhandledEvent
from shared.services.stripe_service import StripeService, construct_verified_event


# === Test Configuration ===

TEST_WEBHOOK_SECRET = "whsec_test_secret123"


def _sign(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> tuple[str, str]:
    ts = str(int(time.time()) if timestamp is None else timestamp)
    digest = hmac.new(
        secret.encode("utf-8"),
        f"{ts}.{payload.decode('utf-8')}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return ts, digest


def _header(payload: bytes, **kwargs: Any) -> str:
    ts, digest = _sign(payload, **kwargs)
    return f"t={ts},v1={digest}"


@pytest.fixture
def checkout_payload() -> bytes:
    # Irregular whitespace on purpose: verification must use these exact bytes
    return (
        b'{"id": "evt_1",  "type": "checkout.session.completed",\n'
        b' "data": {"object": {"id": "cs_test_1", "payment_status": "paid",'
        b' "amount_total": 1000, "currency": "usd",'
        b' "metadata": {"invoiceId": "INV-1"}}}}'
    )


# === Valid Signatures ===


class TestValidSignature:
    def test_valid_signature_decodes_event(self, checkout_payload: bytes) -> None:
        event = construct_verified_event(
            checkout_payload, _header(checkout_payload), TEST_WEBHOOK_SECRET
        )

        assert isinstance(event, CheckoutCompleted)
        assert event.event_id == "evt_1"
        assert event.session_id == "cs_test_1"
        assert event.metadata.invoice_id == "INV-1"

    def test_any_matching_v1_signature_accepted(self, checkout_payload: bytes) -> None:
        ts, digest = _sign(checkout_payload)
        header = f"t={ts},v1={'0' * 64},v1={digest}"

        event = construct_verified_event(checkout_payload, header, TEST_WEBHOOK_SECRET)

        assert event.event_id == "evt_1"

    def test_unknown_schemes_ignored(self, checkout_payload: bytes) -> None:
        ts, digest = _sign(checkout_payload)
        header = f"t={ts},v0=deadbeef,v1={digest}"

        event = construct_verified_event(checkout_payload, header, TEST_WEBHOOK_SECRET)

        assert event.event_id == "evt_1"

    def test_service_verifies_with_configured_secret(self, checkout_payload: bytes) -> None:
        service = StripeService("sk_test_abc", TEST_WEBHOOK_SECRET)

        event = service.verify_webhook(checkout_payload, _header(checkout_payload))

        assert isinstance(event, CheckoutCompleted)


# === Tampering ===


class TestTamperedPayload:
    def test_single_byte_change_rejected(self, checkout_payload: bytes) -> None:
        header = _header(checkout_payload)
        tampered = checkout_payload.replace(b"1000", b"1001")

        with pytest.raises(SignatureError) as exc_info:
            construct_verified_event(tampered, header, TEST_WEBHOOK_SECRET)

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_SIGNATURE

    def test_reserialized_body_rejected(self, checkout_payload: bytes) -> None:
        """Parsing and re-encoding the JSON changes the bytes and breaks the signature."""
        header = _header(checkout_payload)
        reserialized = json.dumps(json.loads(checkout_payload)).encode("utf-8")
        assert reserialized != checkout_payload

        with pytest.raises(SignatureError):
            construct_verified_event(reserialized, header, TEST_WEBHOOK_SECRET)

    def test_wrong_secret_rejected(self, checkout_payload: bytes) -> None:
        header = _header(checkout_payload, secret="whsec_other")

        with pytest.raises(SignatureError):
            construct_verified_event(checkout_payload, header, TEST_WEBHOOK_SECRET)

    def test_non_utf8_body_rejected(self) -> None:
        with pytest.raises(SignatureError):
            construct_verified_event(b"\xff\xfe{}", "t=1,v1=00", TEST_WEBHOOK_SECRET)


# === Missing Inputs ===


class TestMissingInputs:
    def test_missing_secret_rejected(self, checkout_payload: bytes) -> None:
        with pytest.raises(SignatureError) as exc_info:
            construct_verified_event(checkout_payload, _header(checkout_payload), None)

        assert exc_info.value.details == {"message": "Webhook secret not configured"}

    def test_missing_header_rejected(self, checkout_payload: bytes) -> None:
        with pytest.raises(SignatureError):
            construct_verified_event(checkout_payload, None, TEST_WEBHOOK_SECRET)

    def test_empty_body_rejected(self) -> None:
        with pytest.raises(SignatureError):
            construct_verified_event(b"", "t=1,v1=00", TEST_WEBHOOK_SECRET)

    def test_service_without_secret_rejects_everything(self, checkout_payload: bytes) -> None:
        service = StripeService("sk_test_abc", webhook_secret=None)

        with pytest.raises(SignatureError):
            service.verify_webhook(checkout_payload, _header(checkout_payload))


# === Timestamp Tolerance ===


class TestTimestampTolerance:
    def test_stale_timestamp_rejected(self, checkout_payload: bytes) -> None:
        header = _header(checkout_payload, timestamp=int(time.time()) - 600)

        with pytest.raises(SignatureError):
            construct_verified_event(checkout_payload, header, TEST_WEBHOOK_SECRET, tolerance=300)

    def test_timestamp_within_tolerance_accepted(self, checkout_payload: bytes) -> None:
        header = _header(checkout_payload, timestamp=int(time.time()) - 60)

        event = construct_verified_event(
            checkout_payload, header, TEST_WEBHOOK_SECRET, tolerance=300
        )

        assert event.event_id == "evt_1"


# === Header Format ===


class TestHeaderFormat:
    @pytest.mark.parametrize(
        "header",
        [
            "garbage",
            "v1=abcdef",
            "t=notanumber,v1=abcdef",
            "t=,v1=",
        ],
    )
    def test_malformed_header_rejected(self, checkout_payload: bytes, header: str) -> None:
        with pytest.raises(SignatureError):
            construct_verified_event(checkout_payload, header, TEST_WEBHOOK_SECRET)

    def test_header_without_v1_rejected(self, checkout_payload: bytes) -> None:
        ts, _ = _sign(checkout_payload)

        with pytest.raises(SignatureError):
            construct_verified_event(checkout_payload, f"t={ts}", TEST_WEBHOOK_SECRET)


# === Decoding After Verification ===


class TestVerifiedDecoding:
    def test_signed_non_event_body_is_invalid_payload(self) -> None:
        payload = b'["not", "an", "event"]'

        with pytest.raises(InvalidEventPayload):
            construct_verified_event(payload, _header(payload), TEST_WEBHOOK_SECRET)

    def test_signed_unknown_type_is_unhandled(self) -> None:
        payload = b'{"id": "evt_9", "type": "customer.created", "data": {"object": {}}}'

        event = construct_verified_event(payload, _header(payload), TEST_WEBHOOK_SECRET)

        assert isinstance(event, UnhandledEvent)
        assert event.type == "customer.created"

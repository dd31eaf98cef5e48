"""Contract tests for the checkout session and payment intent endpoints.

The Stripe SDK client is mocked at the StripeClient boundary; requests run
through the full app with an in-memory invoice store.

Test categories:
- POST /checkout-sessions for stored invoices and one-off amounts
- POST /create-checkout-for-invoice (legacy path)
- POST /payment-intents
- Request validation (400) and unknown invoices (404)
- Stripe API failures (500)
"""

from typing import Any, Generator
from unittest.mock import MagicMock

import pytest
import stripe
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from api.main import create_app
from shared.services.stripe_service import StripeService


@pytest.fixture
def stripe_client() -> MagicMock:
    """Mock StripeClient with checkout and payment intent resources."""
    client = MagicMock()
    session = MagicMock()
    session.id = "cs_test_abc123"
    session.url = "https://checkout.stripe.com/c/pay/cs_test_abc123"
    session.payment_intent = None
    client.checkout.sessions.create.return_value = session

    intent = MagicMock()
    intent.id = "pi_test_123"
    intent.client_secret = "pi_test_123_secret_xyz"
    client.payment_intents.create.return_value = intent
    return client


@pytest.fixture
def client(
    relay_settings: Any, memory_store: Any, stripe_client: MagicMock
) -> Generator[TestClient, None, None]:
    stripe_service = StripeService(
        relay_settings.stripe_secret_key,
        relay_settings.stripe_webhook_secret,
        client=stripe_client,
    )
    app = create_app(relay_settings, stripe_service=stripe_service, invoice_store=memory_store)
    with TestClient(app) as test_client:
        yield test_client


class TestCheckoutSessions:
    def test_invoice_checkout(
        self, client: TestClient, memory_store: Any, stripe_client: MagicMock
    ) -> None:
        response = client.post("/checkout-sessions", json={"invoiceId": "INV-1"})

        assert response.status_code == HTTP_200_OK
        assert response.json() == {
            "url": "https://checkout.stripe.com/c/pay/cs_test_abc123",
            "sessionId": "cs_test_abc123",
        }

        params = stripe_client.checkout.sessions.create.call_args.kwargs["params"]
        assert params["mode"] == "payment"
        assert params["metadata"] == {"invoiceId": "INV-1"}
        assert params["payment_intent_data"] == {"metadata": {"invoiceId": "INV-1"}}
        assert params["line_items"][0]["price_data"]["unit_amount"] == 1000
        assert params["success_url"] == "https://shop.example.com/paid?invoice=INV-1"

        invoice = memory_store.invoices["INV-1"]
        assert invoice["provider_session_id"] == "cs_test_abc123"
        assert invoice["status"] == "pending"

    def test_legacy_path(self, client: TestClient) -> None:
        response = client.post("/create-checkout-for-invoice", json={"invoiceId": "INV-1"})

        assert response.status_code == HTTP_200_OK
        assert response.json()["sessionId"] == "cs_test_abc123"

    def test_snake_case_invoice_id(self, client: TestClient) -> None:
        response = client.post("/checkout-sessions", json={"invoice_id": "INV-1"})

        assert response.status_code == HTTP_200_OK

    def test_one_off_amount(self, client: TestClient, stripe_client: MagicMock) -> None:
        response = client.post(
            "/checkout-sessions",
            json={"description": "Donation", "amount": 25.5, "currency": "EUR"},
        )

        assert response.status_code == HTTP_200_OK
        params = stripe_client.checkout.sessions.create.call_args.kwargs["params"]
        assert params["line_items"] == [
            {
                "price_data": {
                    "currency": "eur",
                    "product_data": {"name": "Donation"},
                    "unit_amount": 2550,
                },
                "quantity": 1,
            }
        ]

    def test_url_fallback_when_session_has_none(
        self, client: TestClient, stripe_client: MagicMock
    ) -> None:
        stripe_client.checkout.sessions.create.return_value.url = None

        response = client.post("/checkout-sessions", json={"invoiceId": "INV-1"})

        assert response.json()["url"] == "https://checkout.stripe.com/pay/cs_test_abc123"


class TestCheckoutValidation:
    def test_empty_body_missing_field(self, client: TestClient) -> None:
        response = client.post("/checkout-sessions", json={})

        assert response.status_code == HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "ERR_REQ_001"
        assert data["recovery"]

    def test_description_without_amount(self, client: TestClient) -> None:
        response = client.post("/checkout-sessions", json={"description": "Donation"})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_REQ_002"

    @pytest.mark.parametrize("amount", [0, -5, "lots"])
    def test_invalid_amount(self, client: TestClient, amount: Any) -> None:
        response = client.post(
            "/checkout-sessions", json={"description": "Donation", "amount": amount}
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_REQ_002"

    def test_invalid_json(self, client: TestClient) -> None:
        response = client.post(
            "/checkout-sessions",
            content=b"{invoiceId: INV-1}",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_REQ_003"

    def test_non_json_body(self, client: TestClient) -> None:
        response = client.post(
            "/checkout-sessions",
            content=b"invoiceId=INV-1",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == HTTP_415_UNSUPPORTED_MEDIA_TYPE

    def test_unknown_invoice(self, client: TestClient) -> None:
        response = client.post("/checkout-sessions", json={"invoiceId": "INV-404"})

        assert response.status_code == HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "ERR_INV_001"
        assert response.json()["details"] == {"invoice_id": "INV-404"}

    def test_paid_invoice(
        self, client: TestClient, memory_store: Any, stripe_client: MagicMock
    ) -> None:
        memory_store.invoices["INV-1"]["status"] = "paid"

        response = client.post("/checkout-sessions", json={"invoiceId": "INV-1"})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_INV_002"
        stripe_client.checkout.sessions.create.assert_not_called()


class TestStripeFailure:
    def test_stripe_error_returns_500(
        self, client: TestClient, stripe_client: MagicMock
    ) -> None:
        stripe_client.checkout.sessions.create.side_effect = stripe.APIConnectionError(
            "Network error"
        )

        response = client.post("/checkout-sessions", json={"invoiceId": "INV-1"})

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "ERR_STRIPE_002"


class TestPaymentIntents:
    def test_creates_intent(
        self, client: TestClient, memory_store: Any, stripe_client: MagicMock
    ) -> None:
        response = client.post("/payment-intents", json={"invoiceId": "INV-1"})

        assert response.status_code == HTTP_200_OK
        assert response.json() == {
            "clientSecret": "pi_test_123_secret_xyz",
            "paymentIntentId": "pi_test_123",
        }
        params = stripe_client.payment_intents.create.call_args.kwargs["params"]
        assert params["amount"] == 1000
        assert params["currency"] == "usd"
        assert params["metadata"] == {"invoiceId": "INV-1"}
        assert memory_store.invoices["INV-1"]["provider_payment_intent_id"] == "pi_test_123"

    def test_missing_invoice_id(self, client: TestClient) -> None:
        response = client.post("/payment-intents", json={})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_REQ_001"
        assert response.json()["details"]["field"] == "invoiceId"

    def test_unknown_invoice(self, client: TestClient) -> None:
        response = client.post("/payment-intents", json={"invoiceId": "INV-404"})

        assert response.status_code == HTTP_404_NOT_FOUND

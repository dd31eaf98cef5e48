"""Pytest configuration and fixtures for payment relay backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (invoice table with both secondary indexes)
- An in-memory invoice store for handler and service tests
- Relay settings and Stripe signature helpers
"""

import copy
import hashlib
import hmac
import os
import time
from decimal import Decimal
from typing import Any, Callable, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports; api.main builds
# its app from the environment at import time
TEST_REGION = "eu-west-1"
TEST_TABLE_NAME = "test-relay-invoices"
TEST_SECRET_KEY = "sk_test_relay123"
TEST_WEBHOOK_SECRET = "whsec_test_secret_for_testing"

os.environ.setdefault("AWS_DEFAULT_REGION", TEST_REGION)
os.environ.setdefault("STRIPE_SECRET_KEY", TEST_SECRET_KEY)
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
os.environ.setdefault("INVOICES_TABLE_NAME", TEST_TABLE_NAME)

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from shared.config import RelaySettings  # noqa: E402
from shared.services.invoice_store import (  # noqa: E402
    INVOICE_KEY,
    SECONDARY_INDEXES,
    DynamoDBInvoiceStore,
    InvoiceStoreError,
)


# === Signature Helpers ===


def create_stripe_signature(
    payload: bytes,
    secret: str = TEST_WEBHOOK_SECRET,
    timestamp: int | None = None,
) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    ts = str(int(time.time()) if timestamp is None else timestamp)
    signed_payload = f"{ts}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"


@pytest.fixture
def sign() -> Callable[..., str]:
    """Signature helper usable from any test module."""
    return create_stripe_signature


# === In-memory Store ===


class MemoryInvoiceStore:
    """Dict-backed InvoiceStore with the same update semantics as DynamoDB.

    Set ``fail`` to make every call raise InvoiceStoreError. ``writes``
    counts successful updates.
    """

    def __init__(self, invoices: list[dict[str, Any]] | None = None) -> None:
        self.invoices: dict[str, dict[str, Any]] = {}
        self.fail = False
        self.writes = 0
        self.lookups: list[tuple[str, str]] = []
        for invoice in invoices or []:
            self.put(invoice)

    def put(self, invoice: dict[str, Any]) -> None:
        self.invoices[invoice[INVOICE_KEY]] = copy.deepcopy(invoice)

    def _check(self) -> None:
        if self.fail:
            raise InvoiceStoreError("store unavailable")

    def get_invoice(self, invoice_id: str) -> dict[str, Any] | None:
        self._check()
        item = self.invoices.get(invoice_id)
        return copy.deepcopy(item) if item else None

    def find_invoices_by_field(
        self, field: str, value: str, limit: int = 1
    ) -> list[dict[str, Any]]:
        self._check()
        if field not in SECONDARY_INDEXES:
            raise ValueError(field)
        self.lookups.append((field, value))
        matches = [
            copy.deepcopy(item) for item in self.invoices.values() if item.get(field) == value
        ]
        return matches[:limit]

    def update_invoice(
        self,
        invoice_id: str,
        fields: dict[str, Any],
        *,
        keep_existing: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        self._check()
        item = self.invoices.get(invoice_id)
        if item is None:
            return None
        for name, value in fields.items():
            if name in keep_existing and name in item:
                continue
            item[name] = copy.deepcopy(value)
        self.writes += 1
        return copy.deepcopy(item)


@pytest.fixture
def sample_invoice() -> dict[str, Any]:
    """Pending invoice with one $10.00 item."""
    return {
        "invoice_id": "INV-1",
        "currency": "usd",
        "items": [{"description": "Consulting", "unit_price": Decimal("10.00"), "quantity": 1}],
        "total": Decimal("10.00"),
        "status": "pending",
    }


@pytest.fixture
def make_store() -> Callable[..., MemoryInvoiceStore]:
    return MemoryInvoiceStore


@pytest.fixture
def memory_store(sample_invoice: dict[str, Any]) -> MemoryInvoiceStore:
    return MemoryInvoiceStore([sample_invoice])


@pytest.fixture
def relay_settings() -> RelaySettings:
    return RelaySettings(
        environment="test",
        stripe_secret_key=TEST_SECRET_KEY,
        stripe_webhook_secret=TEST_WEBHOOK_SECRET,
        aws_region=TEST_REGION,
        invoices_table_name=TEST_TABLE_NAME,
        success_url="https://shop.example.com/paid?invoice={INVOICE_ID}",
        cancel_url="https://shop.example.com/cancelled?invoice={INVOICE_ID}",
        enable_debug_routes=True,
    )


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = TEST_REGION


@pytest.fixture
def dynamodb_resource(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB resource."""
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name=TEST_REGION)
        yield resource


@pytest.fixture
def invoices_table(dynamodb_resource: Any) -> Any:
    """Create the invoice table with its provider reference indexes."""
    attribute_definitions = [{"AttributeName": INVOICE_KEY, "AttributeType": "S"}]
    indexes = []
    for field, index_name in SECONDARY_INDEXES.items():
        attribute_definitions.append({"AttributeName": field, "AttributeType": "S"})
        indexes.append(
            {
                "IndexName": index_name,
                "KeySchema": [{"AttributeName": field, "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        )

    return dynamodb_resource.create_table(
        TableName=TEST_TABLE_NAME,
        KeySchema=[{"AttributeName": INVOICE_KEY, "KeyType": "HASH"}],
        AttributeDefinitions=attribute_definitions,
        GlobalSecondaryIndexes=indexes,
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def dynamodb_store(dynamodb_resource: Any, invoices_table: Any) -> DynamoDBInvoiceStore:
    return DynamoDBInvoiceStore(TEST_TABLE_NAME, resource=dynamodb_resource)

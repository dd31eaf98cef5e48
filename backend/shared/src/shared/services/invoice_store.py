"""DynamoDB-backed invoice store.

Invoices live in a single table keyed by ``invoice_id`` with two
secondary indexes used only as fallback resolvers for webhook events:

- ``provider_session_id-index``
- ``provider_payment_intent_id-index``
"""

import logging
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

INVOICE_KEY = "invoice_id"

# Invoice attribute -> GSI name
SECONDARY_INDEXES: dict[str, str] = {
    "provider_session_id": "provider_session_id-index",
    "provider_payment_intent_id": "provider_payment_intent_id-index",
}


class InvoiceStoreError(Exception):
    """Raised when the invoice table cannot be read or written."""


class DynamoDBInvoiceStore:
    """Invoice documents in a DynamoDB table."""

    def __init__(
        self,
        table_name: str,
        region_name: str | None = None,
        resource: Any | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            table_name: Full DynamoDB table name
            region_name: AWS region for the boto3 resource
            resource: Pre-built boto3 DynamoDB resource (tests)
        """
        self.table_name = table_name
        self._dynamodb = resource or boto3.resource("dynamodb", region_name=region_name)

    def _get_table(self) -> Any:
        return self._dynamodb.Table(self.table_name)

    def get_invoice(self, invoice_id: str) -> dict[str, Any] | None:
        """Get a single invoice by key.

        Args:
            invoice_id: Invoice key

        Returns:
            Invoice document or None if not found
        """
        try:
            response = self._get_table().get_item(Key={INVOICE_KEY: invoice_id})
        except (ClientError, BotoCoreError) as e:
            raise InvoiceStoreError(f"Failed to read invoice {invoice_id}: {e}") from e
        item: dict[str, Any] | None = response.get("Item")
        return item

    def find_invoices_by_field(
        self,
        field: str,
        value: str,
        limit: int = 1,
    ) -> list[dict[str, Any]]:
        """Query invoices through the secondary index on ``field``.

        Args:
            field: Indexed attribute (see SECONDARY_INDEXES)
            value: Attribute value to match
            limit: Max items to return

        Returns:
            List of matching invoice documents
        """
        index_name = SECONDARY_INDEXES.get(field)
        if index_name is None:
            raise ValueError(f"No secondary index for invoice field {field!r}")

        try:
            response = self._get_table().query(
                IndexName=index_name,
                KeyConditionExpression=Key(field).eq(value),
                Limit=limit,
            )
        except (ClientError, BotoCoreError) as e:
            raise InvoiceStoreError(
                f"Failed to query invoices by {field}: {e}"
            ) from e
        items: list[dict[str, Any]] = response.get("Items", [])
        return items[:limit]

    def update_invoice(
        self,
        invoice_id: str,
        fields: dict[str, Any],
        *,
        keep_existing: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        """Set attributes on an existing invoice.

        Args:
            invoice_id: Invoice key
            fields: Attributes to set
            keep_existing: Attributes written only if not already present

        Returns:
            Updated invoice document, or None if the invoice does not exist
        """
        if not fields:
            raise ValueError("update_invoice requires at least one field")

        assignments = []
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = value
            if name in keep_existing:
                assignments.append(f"#f{i} = if_not_exists(#f{i}, :v{i})")
            else:
                assignments.append(f"#f{i} = :v{i}")
        names["#key"] = INVOICE_KEY

        try:
            response = self._get_table().update_item(
                Key={INVOICE_KEY: invoice_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                # Never create an invoice as a side effect of an update
                ConditionExpression="attribute_exists(#key)",
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning("Invoice %s disappeared before update", invoice_id)
                return None
            raise InvoiceStoreError(f"Failed to update invoice {invoice_id}: {e}") from e
        except BotoCoreError as e:
            raise InvoiceStoreError(f"Failed to update invoice {invoice_id}: {e}") from e

        attrs: dict[str, Any] | None = response.get("Attributes")
        return attrs

"""Amount conversion and Stripe line item building."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from shared.models.invoice import Invoice

# Currencies Stripe charges in whole units (no minor unit multiplier)
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a major-unit amount to Stripe's integer minor units.

    Args:
        amount: Amount in major units (e.g. Decimal("10.00") dollars)
        currency: ISO currency code

    Returns:
        Amount in minor units (e.g. 1000 cents), rounded half up
    """
    if currency.lower() not in ZERO_DECIMAL_CURRENCIES:
        amount = amount * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def price_line_item(
    name: str,
    unit_amount: int,
    currency: str,
    quantity: int = 1,
) -> dict[str, Any]:
    """Build a Stripe Checkout line item with inline price data."""
    return {
        "price_data": {
            "currency": currency,
            "product_data": {"name": name},
            "unit_amount": unit_amount,
        },
        "quantity": quantity,
    }


def build_line_items(invoice: Invoice, currency: str) -> list[dict[str, Any]]:
    """Build Checkout line items for an invoice.

    One line per invoice item; an invoice with no items is charged its
    total as a single line.

    Args:
        invoice: Invoice to charge
        currency: Effective currency code

    Returns:
        List of Stripe line items
    """
    if invoice.items:
        return [
            price_line_item(
                item.description,
                to_minor_units(item.unit_price, currency),
                currency,
                item.quantity,
            )
            for item in invoice.items
        ]
    return [
        price_line_item(
            f"Invoice {invoice.invoice_id}",
            to_minor_units(invoice.amount_due(), currency),
            currency,
        )
    ]


def line_items_total(line_items: list[dict[str, Any]]) -> int:
    """Sum of ``unit_amount * quantity`` over Stripe line items."""
    return sum(
        item["price_data"]["unit_amount"] * item["quantity"] for item in line_items
    )

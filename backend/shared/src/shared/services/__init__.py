"""Backend services for the payment relay."""

from .invoice_store import DynamoDBInvoiceStore, InvoiceStoreError
from .payment_service import PaymentService
from .protocols import InvoiceStore, PaymentVerifier
from .ssm_service import SSMService, SSMServiceError
from .stripe_service import StripeService, StripeServiceError, construct_verified_event
from .webhook_handler import WebhookHandler, WebhookResult

__all__ = [
    "DynamoDBInvoiceStore",
    "InvoiceStore",
    "InvoiceStoreError",
    "PaymentService",
    "PaymentVerifier",
    "SSMService",
    "SSMServiceError",
    "StripeService",
    "StripeServiceError",
    "construct_verified_event",
    "WebhookHandler",
    "WebhookResult",
]

"""API-specific request/response models.

Domain models (Invoice, events, errors) are in shared.models and are reused
here where appropriate.

Modules:
- common: Shared response models and body validation
- payments: Checkout session and payment intent models
- webhooks: Webhook acknowledgement model
"""

__all__: list[str] = []

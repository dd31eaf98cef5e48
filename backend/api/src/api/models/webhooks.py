"""API models for the webhook endpoint."""

from pydantic import BaseModel

from shared.models.enums import ProcessingResult
from shared.services.webhook_handler import WebhookResult


class WebhookResponse(BaseModel):
    """Standard webhook response."""

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: ProcessingResult
    invoice_id: str | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: WebhookResult) -> "WebhookResponse":
        return cls(**result.model_dump())

"""Shared API request/response models.

This module contains models used across endpoints and the helper that turns
a decoded JSON body into a request model.

Request bodies are decoded by ``RawBodyMiddleware`` rather than by FastAPI,
so validation failures surface as ``ErrorResponse`` bodies with relay error
codes instead of FastAPI's 422 format.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Re-export ErrorResponse for convenience - this is the standard error format
from shared.models.errors import ErrorCode, ErrorResponse, RelayError

__all__ = [
    "ErrorCode",
    "ErrorResponse",
    "OkResponse",
    "validate_body",
]

ModelT = TypeVar("ModelT", bound=BaseModel)

# Fields whose validation failures are reported as INVALID_AMOUNT
AMOUNT_FIELDS = frozenset({"amount"})


class OkResponse(BaseModel):
    """Acknowledgement for operations without data payload."""

    model_config = ConfigDict(strict=True)

    ok: bool = Field(default=True, description="Always true on success")


def validate_body(model: type[ModelT], body: dict[str, Any]) -> ModelT:
    """Validate a decoded JSON body against a request model.

    Args:
        model: Request model class
        body: Decoded JSON object

    Returns:
        Validated model instance

    Raises:
        RelayError: INVALID_AMOUNT for amount fields, MISSING_FIELD otherwise.
    """
    try:
        return model.model_validate(body)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or "body"
        code = ErrorCode.INVALID_AMOUNT if field in AMOUNT_FIELDS else ErrorCode.MISSING_FIELD
        raise RelayError(
            code=code,
            details={"field": field, "message": error.get("msg", "")},
        ) from e

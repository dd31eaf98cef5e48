"""Runtime configuration for the payment relay.

Settings are read from environment variables. Stripe secrets that are not
in the environment are fetched from SSM Parameter Store when
``SSM_PARAMETER_PREFIX`` is set.

A missing Stripe secret key or store region is fatal: ``load_settings``
raises ``ConfigurationError`` and the app refuses to start.
"""

import logging
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.models.errors import ConfigurationError
from shared.services.ssm_service import SSMService, SSMServiceError
from shared.services.stripe_service import DEFAULT_WEBHOOK_TOLERANCE

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_SIZE = 1024 * 1024  # 1 MiB
INVOICE_ID_PLACEHOLDER = "{INVOICE_ID}"


class RelaySettings(BaseModel):
    """Validated relay configuration."""

    model_config = ConfigDict(frozen=True)

    environment: str = "dev"
    log_level: str = "INFO"
    stripe_secret_key: str = Field(..., min_length=1, repr=False)
    stripe_webhook_secret: str | None = Field(default=None, repr=False)
    aws_region: str = Field(..., min_length=1)
    invoices_table_name: str = Field(..., min_length=1)
    success_url: str = f"https://example.com/payment-success?invoiceId={INVOICE_ID_PLACEHOLDER}"
    cancel_url: str = f"https://example.com/payment-cancelled?invoiceId={INVOICE_ID_PLACEHOLDER}"
    max_body_size: int = Field(default=DEFAULT_MAX_BODY_SIZE, gt=0)
    webhook_tolerance_seconds: int = Field(default=DEFAULT_WEBHOOK_TOLERANCE, gt=0)
    default_currency: str = "usd"
    enable_debug_routes: bool = False
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("default_currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    def success_url_for(self, invoice_id: str | None) -> str:
        return redirect_url(self.success_url, invoice_id)

    def cancel_url_for(self, invoice_id: str | None) -> str:
        return redirect_url(self.cancel_url, invoice_id)


def redirect_url(template: str, invoice_id: str | None) -> str:
    """Fill the invoice placeholder in a redirect URL.

    Without an invoice, query parameters carrying the placeholder are
    dropped rather than sent empty.
    """
    if invoice_id is not None:
        return template.replace(INVOICE_ID_PLACEHOLDER, invoice_id)

    parts = urlsplit(template)
    query = "&".join(
        pair for pair in parts.query.split("&") if pair and INVOICE_ID_PLACEHOLDER not in pair
    )
    url = urlunsplit(parts._replace(query=query))
    return url.replace(INVOICE_ID_PLACEHOLDER, "")


# Environment variable -> settings field
_ENV_FIELDS = {
    "LOG_LEVEL": "log_level",
    "STRIPE_SECRET_KEY": "stripe_secret_key",
    "STRIPE_WEBHOOK_SECRET": "stripe_webhook_secret",
    "SUCCESS_URL": "success_url",
    "CANCEL_URL": "cancel_url",
    "MAX_BODY_SIZE": "max_body_size",
    "WEBHOOK_TOLERANCE_SECONDS": "webhook_tolerance_seconds",
    "DEFAULT_CURRENCY": "default_currency",
    "ENABLE_DEBUG_ROUTES": "enable_debug_routes",
    "CORS_ALLOW_ORIGINS": "cors_allow_origins",
}


def _load_ssm_secrets(
    values: dict[str, Any],
    prefix: str,
    region: str | None,
    ssm: SSMService | None,
) -> None:
    """Fill Stripe secrets missing from the environment from SSM."""
    wanted = {
        "stripe_secret_key": f"{prefix}/stripe/secret_key",
        "stripe_webhook_secret": f"{prefix}/stripe/webhook_secret",
    }
    missing = {field: path for field, path in wanted.items() if not values.get(field)}
    if not missing:
        return

    ssm = ssm or SSMService(region_name=region)
    try:
        for field, path in missing.items():
            value = ssm.get_optional_parameter(path)
            if value:
                values[field] = value
    except SSMServiceError as e:
        raise ConfigurationError(f"Could not load secrets from SSM: {e}") from e


def load_settings(
    environ: Mapping[str, str] | None = None,
    ssm: SSMService | None = None,
) -> RelaySettings:
    """Build settings from environment variables.

    Args:
        environ: Variables to read; defaults to ``os.environ``
        ssm: SSM service used when ``SSM_PARAMETER_PREFIX`` is set

    Returns:
        Validated RelaySettings

    Raises:
        ConfigurationError: If a required setting is missing or invalid.
    """
    env = os.environ if environ is None else environ
    environment = env.get("ENVIRONMENT", "dev")

    values: dict[str, Any] = {"environment": environment}
    for variable, field in _ENV_FIELDS.items():
        if env.get(variable):
            values[field] = env[variable]

    region = env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION")
    if region:
        values["aws_region"] = region

    table_prefix = env.get("DYNAMODB_TABLE_PREFIX", f"payment-relay-{environment}")
    values["invoices_table_name"] = env.get(
        "INVOICES_TABLE_NAME", f"{table_prefix}-invoices"
    )

    ssm_prefix = env.get("SSM_PARAMETER_PREFIX")
    if ssm_prefix:
        _load_ssm_secrets(values, ssm_prefix.rstrip("/"), region, ssm)

    if not values.get("stripe_secret_key"):
        raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
    if not region:
        raise ConfigurationError("AWS_REGION (or AWS_DEFAULT_REGION) is not configured")

    try:
        settings = RelaySettings.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if not settings.stripe_webhook_secret:
        logger.warning(
            "STRIPE_WEBHOOK_SECRET is not configured; all webhook deliveries will be rejected"
        )
    return settings

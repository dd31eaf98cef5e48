"""SSM Parameter Store service for secure secret retrieval.

Provides cached access to AWS SSM Parameter Store SecureString parameters.
Used for the Stripe secret key and webhook signing secret when they are
not supplied through the environment.
"""

import logging
from typing import ClassVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""


class SSMService:
    """Service for retrieving secrets from AWS SSM Parameter Store.

    Usage:
        ssm = SSMService(region_name="eu-west-1")
        stripe_key = ssm.get_parameter("/payment-relay/dev/stripe/secret_key")
    """

    _cache: ClassVar[dict[str, str]] = {}

    def __init__(self, region_name: str | None = None) -> None:
        """Initialize the SSM client.

        Args:
            region_name: AWS region; defaults to the boto3 resolution chain.
        """
        self._client = boto3.client("ssm", region_name=region_name)

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Retrieve a parameter value from SSM Parameter Store.

        Args:
            name: Full parameter path (e.g., "/payment-relay/dev/stripe/secret_key")
            use_cache: Whether to use cached value if available (default: True)

        Returns:
            The decrypted parameter value.

        Raises:
            SSMServiceError: If parameter cannot be retrieved.
        """
        if use_cache and name in self._cache:
            logger.debug("SSM cache hit for %s", name)
            return self._cache[name]

        try:
            logger.info("Fetching SSM parameter: %s", name)
            response = self._client.get_parameter(Name=name, WithDecryption=True)
            value = response["Parameter"]["Value"]
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            if error_code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter: {name}. "
                    "Check IAM permissions for ssm:GetParameter."
                ) from e
            raise SSMServiceError(
                f"Failed to retrieve SSM parameter {name}: {e}"
            ) from e
        except BotoCoreError as e:
            raise SSMServiceError(
                f"Failed to retrieve SSM parameter {name}: {e}"
            ) from e

        self._cache[name] = value
        return value

    def get_optional_parameter(self, name: str) -> str | None:
        """Retrieve a parameter, returning None when it does not exist.

        Raises:
            SSMServiceError: For any failure other than a missing parameter.
        """
        try:
            return self.get_parameter(name)
        except SSMServiceError as e:
            if isinstance(e.__cause__, ClientError) and (
                e.__cause__.response.get("Error", {}).get("Code") == "ParameterNotFound"
            ):
                logger.warning("SSM parameter %s not set", name)
                return None
            raise

    @classmethod
    def clear_cache(cls) -> None:
        """Clear all cached parameters.

        Useful for testing or when parameters are known to have changed.
        """
        cls._cache.clear()
        logger.info("SSM parameter cache cleared")

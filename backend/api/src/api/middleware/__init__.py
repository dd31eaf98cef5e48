"""ASGI middleware for the payment relay API."""

from api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from api.middleware.raw_body import RawBodyMiddleware

__all__ = ["CORRELATION_ID_HEADER", "CorrelationIdMiddleware", "RawBodyMiddleware"]

"""FastAPI application for the Stripe payment relay.

This package provides REST endpoints for:
- Starting payments (checkout sessions, payment intents)
- Receiving Stripe webhooks that mark invoices paid
- Health checks

Middleware order, outermost first: CORS, correlation ID, raw body capture.
Raw body capture must run before any route reads the request so webhook
signatures are checked over the bytes Stripe sent.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from api.exceptions import register_exception_handlers
from api.middleware import CorrelationIdMiddleware, RawBodyMiddleware
from api.routes import debug_router, health_router, payments_router, webhooks_router
from api.routes.webhooks import WEBHOOK_PATH
from shared.config import RelaySettings, load_settings
from shared.services.invoice_store import DynamoDBInvoiceStore
from shared.services.payment_service import PaymentService
from shared.services.protocols import InvoiceStore
from shared.services.stripe_service import StripeService
from shared.services.webhook_handler import WebhookHandler
from shared.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: RelaySettings | None = None,
    *,
    stripe_service: StripeService | None = None,
    invoice_store: InvoiceStore | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Relay settings; loaded from the environment when omitted
        stripe_service: Stripe wrapper; built from settings when omitted
        invoice_store: Invoice store; DynamoDB table from settings when omitted

    Returns:
        Configured FastAPI app

    Raises:
        ConfigurationError: If required settings are missing.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    stripe_service = stripe_service or StripeService(
        settings.stripe_secret_key,
        settings.stripe_webhook_secret,
        webhook_tolerance=settings.webhook_tolerance_seconds,
    )
    if invoice_store is None:
        invoice_store = DynamoDBInvoiceStore(
            settings.invoices_table_name,
            region_name=settings.aws_region,
        )

    app = FastAPI(
        title="Payment Relay API",
        description="Stripe checkout and webhook relay for stored invoices",
        version="0.1.0",
    )

    app.state.payment_service = PaymentService(invoice_store, stripe_service, settings)
    app.state.webhook_handler = WebhookHandler(stripe_service, invoice_store)

    # add_middleware prepends, so the last one added is outermost
    app.add_middleware(
        RawBodyMiddleware,
        max_body_size=settings.max_body_size,
        raw_only_paths=[WEBHOOK_PATH],
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials="*" not in settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers for consistent error responses
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(payments_router)
    app.include_router(webhooks_router)
    if settings.enable_debug_routes:
        logger.warning("Debug routes enabled (environment: %s)", settings.environment)
        app.include_router(debug_router)

    logger.info(
        "Payment relay started (environment: %s, table: %s)",
        settings.environment,
        settings.invoices_table_name,
    )
    return app


app = create_app()

# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["backend/api/src", "backend/shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()

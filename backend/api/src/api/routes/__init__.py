"""API routes package.

Routers are organized by concern:

- health: Liveness and health check endpoints
- payments: Checkout sessions and payment intents
- webhooks: Stripe webhook receiver
- debug: Local testing helpers (mounted only when enabled)

All routers are registered in main.py.
"""

from api.routes.debug import router as debug_router
from api.routes.health import router as health_router
from api.routes.payments import router as payments_router
from api.routes.webhooks import router as webhooks_router

__all__ = [
    "debug_router",
    "health_router",
    "payments_router",
    "webhooks_router",
]

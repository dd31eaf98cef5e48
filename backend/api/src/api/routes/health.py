"""Health check endpoints."""

import datetime as dt
from typing import Any

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])

SERVICE_NAME = "payment-relay"


@router.get("/", response_class=PlainTextResponse, summary="Liveness check")
async def root() -> str:
    return "Payment relay is running"


@router.get("/ping", summary="Health check")
async def ping() -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.UTC).isoformat(),
        "service": SERVICE_NAME,
    }

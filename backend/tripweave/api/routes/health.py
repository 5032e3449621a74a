"""Health check endpoints."""

import json
from typing import Any

from fastapi import APIRouter, Response
from sqlalchemy import text

from backend.tripweave.config import Settings, get_settings
from backend.tripweave.db.engine import get_async_engine

router = APIRouter()


async def check_db(settings: Settings) -> tuple[bool, str]:
    """Check document store connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.database_url:
        return (True, "in_memory")

    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


def check_oracle(settings: Settings) -> tuple[bool, str]:
    """Report which oracle backend is configured.

    Returns:
        (is_ok, status_message)
    """
    api_key = settings.openai_api_key
    if api_key and api_key.get_secret_value():
        return (True, "openai")
    return (True, "stub")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple liveness check.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Readiness check.

    Returns:
        200 with component status if the store is reachable
        503 otherwise
    """
    settings = get_settings()

    db_ok, db_status = await check_db(settings)
    _, oracle_status = check_oracle(settings)

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {
            "db": db_status,
            "oracle": oracle_status,
        },
    }

    if not db_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body

"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.tripweave.api.errors import engine_error_handler
from backend.tripweave.api.routes.confirmations import router as confirmations_router
from backend.tripweave.api.routes.health import router as health_router
from backend.tripweave.api.routes.inspirations import router as inspirations_router
from backend.tripweave.api.routes.metrics import router as metrics_router
from backend.tripweave.api.routes.trips import router as trips_router
from backend.tripweave.config import get_settings
from backend.tripweave.db.engine import create_tables, get_async_engine
from backend.tripweave.errors import EngineError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create document tables when a database is configured."""
    if get_settings().database_url:
        await create_tables(get_async_engine())
        logger.info("Document tables ready")
    else:
        logger.warning("No DATABASE_URL configured, using in-memory document stores")
    yield


app = FastAPI(title="Tripweave API", version="0.1.0", lifespan=lifespan)

app.add_exception_handler(EngineError, engine_error_handler)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(trips_router, tags=["trips"])
app.include_router(confirmations_router, tags=["confirmations"])
app.include_router(inspirations_router, tags=["inspirations"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Tripweave API", "version": "0.1.0"}

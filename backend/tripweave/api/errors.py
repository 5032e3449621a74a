"""Mapping of engine errors to HTTP responses."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from backend.tripweave.errors import (
    EngineError,
    InvalidRequestError,
    NotFoundError,
    StaleWriteError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


def status_for_error(error: EngineError) -> int:
    """HTTP status code for an engine error."""
    if isinstance(error, InvalidRequestError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, UnauthorizedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, StaleWriteError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Render an EngineError as ``{"detail": ..., "error": ...}``."""
    code = status_for_error(exc)
    if code >= 500:
        logger.error(f"Unhandled engine error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )

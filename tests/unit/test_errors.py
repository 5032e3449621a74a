"""Tests for engine error to HTTP status mapping."""

import pytest

from backend.tripweave.api.errors import status_for_error
from backend.tripweave.errors import (
    EngineError,
    InvalidRequestError,
    NotFoundError,
    StaleWriteError,
    UnauthorizedError,
    VersionNotFoundError,
)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (InvalidRequestError("bad day"), 400),
        (UnauthorizedError("not yours"), 403),
        (NotFoundError("gone"), 404),
        (VersionNotFoundError("no snapshot"), 404),
        (StaleWriteError("trip-1", 1, 2), 409),
        (EngineError("unexpected"), 500),
    ],
)
def test_status_for_error(error: EngineError, expected: int) -> None:
    """Each error class maps to one status code."""
    assert status_for_error(error) == expected


def test_stale_write_message() -> None:
    """Stale writes name both versions."""
    error = StaleWriteError("trip-1", 1, 2)
    assert "based on version 1" in str(error)
    assert error.actual_version == 2

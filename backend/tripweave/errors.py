"""Engine error taxonomy.

Validation, not-found and unauthorized errors abort an operation before any
write. Oracle failures never surface as exceptions; they are folded into
``Invalid`` results and resolved by deterministic fallbacks.
"""


class EngineError(Exception):
    """Base class for all engine errors."""

    pass


class InvalidRequestError(EngineError):
    """Caller supplied an invalid day number, id, status or payload."""

    pass


class NotFoundError(EngineError):
    """Trip, activity, confirmation or version does not exist."""

    pass


class VersionNotFoundError(NotFoundError):
    """Requested history version is not present for the day."""

    pass


class UnauthorizedError(EngineError):
    """Document exists but belongs to a different owner."""

    pass


class StaleWriteError(EngineError):
    """Write was based on an outdated document version."""

    def __init__(self, document_id: str, expected_version: int, actual_version: int) -> None:
        super().__init__(
            f"Stale write for {document_id}: based on version {expected_version}, "
            f"store has version {actual_version}"
        )
        self.document_id = document_id
        self.expected_version = expected_version
        self.actual_version = actual_version

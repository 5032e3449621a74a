"""Request context for ownership enforcement."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Request context containing the caller's identity.

    Used to enforce ownership boundaries in all service operations.
    """

    user_id: str

"""Minimal auth dependency.

Stub implementation that extracts the owner id from a bearer token or uses
a development default. Token verification belongs to the identity provider
in front of this service.
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from backend.tripweave.db.context import RequestContext

DEV_USER_ID = "dev-user"


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from authorization header.

    Accepts "Bearer <user_id>". Without a header the development user is
    used so local runs need no identity provider.

    Args:
        authorization: Authorization header (e.g., "Bearer user-123")

    Returns:
        RequestContext with user_id

    Raises:
        HTTPException: If authorization is invalid
    """
    if not authorization:
        return RequestContext(user_id=DEV_USER_ID)

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = authorization[7:].strip()  # Strip "Bearer "
    if not user_id or " " in user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token (expected user id)",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return RequestContext(user_id=user_id)

"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError
from backend.app.core.exceptions import AuthenticationError
from backend.app.core.jwt import decode_access_token
from backend.app.models.enums import ActorType
from backend.app.schemas.actor import Actor

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """
    FastAPI dependency building the acting identity from a bearer token.

    Checks:
    1. Validates JWT token signature and expiry
    2. Requires a subject and a known actor type
    3. Carries role and scope claims through untouched; the lifecycle
       engine decides what an unknown or missing role may do

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or malformed
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    actor_id = payload.get("sub")
    if not actor_id:
        raise AuthenticationError("Invalid token payload")

    try:
        actor_type = ActorType(payload.get("actor_type"))
    except ValueError:
        raise AuthenticationError("Unknown actor type in token")

    try:
        return Actor(
            id=str(actor_id),
            type=actor_type,
            role=payload.get("role"),
            forwarder_id=payload.get("forwarder_id"),
            warehouse_ids=payload.get("warehouse_ids") or [],
        )
    except ValidationError:
        raise AuthenticationError("Invalid token payload")

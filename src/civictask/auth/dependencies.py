"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from civictask.auth.jwt import actor_from_claims, verify_token
from civictask.auth.schemas import Actor

_bearer = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> Actor:
    """Verify the bearer token and return the caller. Raises 401 on failure."""
    try:
        payload = verify_token(credentials.credentials)
        return actor_from_claims(payload)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e


async def require_department(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_department:
        raise HTTPException(status_code=403, detail="Department access required")
    return actor

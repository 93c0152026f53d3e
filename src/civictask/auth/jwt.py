"""
Bearer token verification.

Tokens are issued by the external identity provider; this service only
verifies them with the provider's public key and reads the actor claims:

    sub         worker or admin uid
    name        display name (optional)
    role        "worker" or "department"
    department  department code the caller belongs to
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from civictask.auth.schemas import Actor
from civictask.config import get_settings
from civictask.store.records import Department

_public_key: str | None = None


def _load_public_key() -> str:
    """Load the verification key from settings or disk (cached after first call)."""
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        settings = get_settings()
        _public_key = settings.jwt_public_key or Path(settings.jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset cached key (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a bearer token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or from another issuer.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _load_public_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None
    return payload


def actor_from_claims(payload: dict[str, Any]) -> Actor:
    """Build the acting identity from verified claims."""
    role = payload.get("role", "worker")
    if role not in ("worker", "department"):
        msg = f"Unknown role '{role}'"
        raise jwt.InvalidTokenError(msg)

    department = payload.get("department")
    try:
        dept = Department(department) if department else None
    except ValueError:
        msg = f"Unknown department '{department}'"
        raise jwt.InvalidTokenError(msg) from None

    if role == "department" and dept is None:
        msg = "Department tokens must carry a department claim"
        raise jwt.InvalidTokenError(msg)

    return Actor(uid=str(payload["sub"]), name=payload.get("name", ""), role=role, department=dept)

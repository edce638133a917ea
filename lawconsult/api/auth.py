"""Actor resolution for API requests.

Sessions and logins belong to the upstream gateway, which forwards the
authenticated identity in ``X-Actor-Role`` / ``X-Actor-Id``. Admin requests
must also carry the shared operator key.
"""

from __future__ import annotations

import secrets

from fastapi import Header, HTTPException, status

from lawconsult.config import settings
from lawconsult.models.enums import ActorRole
from lawconsult.schemas.appointment import Actor


async def get_actor(
    x_actor_role: str = Header(...),
    x_actor_id: str = Header(..., min_length=1),
    x_admin_key: str | None = Header(default=None),
) -> Actor:
    """FastAPI dependency: build the Actor for this request.

    Raises 401 for an unknown role or a bad admin key, 503 if admin access is
    requested but no key is configured.
    """
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown actor role: {x_actor_role}",
        ) from None

    if role is ActorRole.ADMIN:
        expected = settings.security.admin_api_key
        if not expected:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="ADMIN_API_KEY not configured",
            )
        key_ok = x_admin_key is not None and secrets.compare_digest(
            x_admin_key.encode("utf-8"),
            expected.encode("utf-8"),
        )
        if not key_ok:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid admin key",
            )

    return Actor(role=role, id=x_actor_id)

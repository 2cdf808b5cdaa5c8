"""FastAPI authentication dependencies."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from levelboard.auth.jwt import verify_token

_bearer = HTTPBearer()

REVIEW_PERMISSION = "review"
MODERATE_PERMISSION = "moderate"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""

    id: uuid.UUID
    permissions: frozenset[str] = field(default_factory=frozenset)
    priority: bool = False

    @property
    def can_review(self) -> bool:
        return REVIEW_PERMISSION in self.permissions

    @property
    def can_moderate(self) -> bool:
        return MODERATE_PERMISSION in self.permissions


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> Actor:
    """
    Extract and verify the JWT, return the calling Actor.

    Raises 401 on a bad token.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = uuid.UUID(str(payload["sub"]))
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Malformed subject claim") from e

    return Actor(
        id=user_id,
        permissions=frozenset(payload.get("permissions", [])),
        priority=bool(payload.get("priority", False)),
    )


async def require_reviewer(actor: Actor = Depends(get_current_user)) -> Actor:
    """Same as get_current_user but requires the review permission."""
    if not actor.can_review:
        raise HTTPException(status_code=403, detail="Reviewer permission required")
    return actor


async def require_moderator(actor: Actor = Depends(get_current_user)) -> Actor:
    """Same as get_current_user but requires the moderate permission."""
    if not actor.can_moderate:
        raise HTTPException(status_code=403, detail="Moderator permission required")
    return actor

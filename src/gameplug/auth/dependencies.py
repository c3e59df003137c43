"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gameplug.auth.jwt import verify_token
from gameplug.loyalty.errors import ForbiddenError

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),  # noqa: B008
) -> CurrentUser:
    """Verify the bearer token and return the caller. Raises 401 on a missing or bad token."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"}) from e

    return CurrentUser(user_id=str(payload["sub"]), role=str(payload.get("role") or "user"))


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:  # noqa: B008
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user

"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.jwt import verify_token
from lifescore.database import get_session
from lifescore.db.models import User
from lifescore.errors import UnauthenticatedError
from lifescore.users.service import get_user

_bearer = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """
    Resolve the viewer from the bearer token, or None for anonymous requests.

    A token that is present but invalid is still an error.
    """
    if credentials is None:
        return None
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise UnauthenticatedError(str(e)) from e

    user = await get_user(db, int(payload["sub"]))
    if user is None:
        raise UnauthenticatedError("User not found")
    return user


async def get_current_user(
    user: User | None = Depends(get_optional_user),
) -> User:
    """Same as get_optional_user but the viewer is required."""
    if user is None:
        raise UnauthenticatedError("You must be logged in to perform this action")
    return user

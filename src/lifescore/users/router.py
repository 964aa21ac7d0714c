"""User router: all /api/v1/users/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.dependencies import get_current_user
from lifescore.auth.jwt import create_access_token
from lifescore.database import get_session
from lifescore.db.models import User
from lifescore.errors import NotFoundError
from lifescore.users.schemas import (
    AuthResponse,
    CreateUserRequest,
    LoginCodeResponse,
    LoginRequest,
    MeResponse,
    UpdateUserRequest,
    UserResponse,
    UserSummary,
)
from lifescore.users.service import (
    create_user,
    delete_user,
    get_user,
    login_with_code,
    regenerate_login_code,
    update_profile,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def user_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, display_name=user.display_name, avatar_url=user.avatar_url)


def me_response(user: User) -> MeResponse:
    """Build a MeResponse from a User model."""
    return MeResponse(
        id=user.id,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
        unique_code=user.unique_code,
        email=user.email,
        features=list(user.features or []),
    )


# ---------------------------------------------------------------------------
# Sign-up and login
# ---------------------------------------------------------------------------


@router.post("", response_model=AuthResponse, status_code=201)
async def create_user_endpoint(
    body: CreateUserRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Create an account and return a token for it."""
    user = await create_user(db, body.display_name, body.avatar_url, body.email)
    await db.commit()
    return AuthResponse(token=create_access_token(user.id), user=me_response(user))


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Exchange a personal login code for a token."""
    user = await login_with_code(db, body.code)
    return AuthResponse(token=create_access_token(user.id), user=me_response(user))


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/me", response_model=MeResponse)
async def get_profile(
    user: User = Depends(get_current_user),
) -> MeResponse:
    """Get own full profile."""
    return me_response(user)


@router.patch("/me", response_model=MeResponse)
async def update_my_profile(
    body: UpdateUserRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MeResponse:
    user = await update_profile(db, user, display_name=body.display_name, avatar_url=body.avatar_url)
    await db.commit()
    logger.info("profile_updated", user_id=user.id)
    return me_response(user)


@router.post("/me/code", response_model=LoginCodeResponse)
async def regenerate_my_code(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LoginCodeResponse:
    """Issue a new login code; the old one stops working."""
    code = await regenerate_login_code(db, user)
    await db.commit()
    return LoginCodeResponse(code=code)


@router.delete("/me", status_code=204)
async def delete_my_account(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    await delete_user(db, user.id)
    await db.commit()


@router.get("/{user_id}", response_model=UserResponse)
async def get_public_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Public profile (no code, no email)."""
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserResponse(
        id=user.id,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
    )

"""User management business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from lifescore.db.models import User
from lifescore.errors import InvariantViolationError, NotFoundError, UnauthenticatedError, ValidationError
from lifescore.groups.invite_codes import generate_unique_code, normalize_invite_code

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MAX_DISPLAY_NAME_LENGTH = 64


def clean_display_name(display_name: str | None) -> str:
    """Trim a display name and reject blank or oversized ones."""
    trimmed = (display_name or "").strip()
    if not trimmed:
        raise ValidationError("Display name is required")
    if len(trimmed) > MAX_DISPLAY_NAME_LENGTH:
        raise ValidationError(f"Display name must be {MAX_DISPLAY_NAME_LENGTH} characters or less")
    return trimmed


def normalize_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValidationError("Email is required")
    return normalized


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    display_name: str,
    avatar_url: str | None = None,
    email: str | None = None,
) -> User:
    """
    Create a user with a fresh login code.

    Raises:
        ValidationError: Blank display name.
        InvariantViolationError: Email already registered.
    """
    name = clean_display_name(display_name)

    normalized_email = None
    if email is not None:
        normalized_email = normalize_email(email)
        if await get_user_by_email(db, normalized_email) is not None:
            raise InvariantViolationError("An account with this email already exists")

    now = datetime.now(timezone.utc)
    user = User(
        display_name=name,
        avatar_url=avatar_url,
        email=normalized_email,
        unique_code=await generate_unique_code(db, "user"),
        features=[],
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    await db.flush()

    logger.info("user_created", user_id=user.id)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    display_name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """Update the fields that were given; leave the rest alone."""
    if display_name is not None:
        user.display_name = clean_display_name(display_name)
    if avatar_url is not None:
        user.avatar_url = avatar_url or None

    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return user


async def login_with_code(db: AsyncSession, code: str) -> User:
    """Resolve a personal login code to its user."""
    normalized = normalize_invite_code(code or "")
    if not normalized:
        raise UnauthenticatedError("Invalid login code")

    result = await db.execute(select(User).where(User.unique_code == normalized))
    user = result.scalar_one_or_none()
    if user is None:
        raise UnauthenticatedError("Invalid login code")

    logger.info("user_logged_in", user_id=user.id)
    return user


async def regenerate_login_code(db: AsyncSession, user: User) -> str:
    """Replace the user's login code. The previous code stops working immediately."""
    user.unique_code = await generate_unique_code(db, "user")
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("login_code_regenerated", user_id=user.id)
    return user.unique_code


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Delete a user and, through FK cascades, everything they own."""
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id)


async def get_users_by_ids(db: AsyncSession, user_ids: list[int]) -> dict[int, User]:
    """Batch lookup keyed by id; unknown ids are simply absent."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}

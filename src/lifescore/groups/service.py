"""Group business logic.

Rules:
- The creator is the group's only OWNER and the only one who can rename,
  delete, invite into or remove from it
- Membership is one row per (group, user): PENDING until the invitee
  accepts, then ACCEPTED
- An OWNER cannot leave; the group has to be deleted instead
- Groups start without an invite code; any ACCEPTED member can issue one,
  which replaces (and invalidates) the previous code
- Joining by code skips the invite step, or accepts a pending invite
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import (
    Group,
    GroupMembership,
    GroupRole,
    LifeScore,
    LifeScoreGroup,
    MembershipStatus,
    User,
)
from lifescore.errors import (
    InvalidInviteCodeError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from lifescore.groups import store
from lifescore.groups.invite_codes import generate_unique_code, normalize_invite_code
from lifescore.social import visibility
from lifescore.users import service as user_service

logger = logging.getLogger(__name__)

MAX_GROUP_NAME_LENGTH = 100


@dataclass
class GroupPreview:
    """What an invite link shows before the visitor has joined."""

    id: int
    name: str
    member_count: int


@dataclass
class RecentActivity:
    user: User
    score: float
    created_at: datetime


def _clean_group_name(name: str | None) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Group name is required")
    if len(trimmed) > MAX_GROUP_NAME_LENGTH:
        raise ValidationError(f"Group name must be {MAX_GROUP_NAME_LENGTH} characters or less")
    return trimmed


async def get_group_or_404(db: AsyncSession, group_id: int) -> Group:
    group = await store.get_group(db, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def create_group(db: AsyncSession, owner_id: int, name: str) -> Group:
    """Create a group. The creator becomes its OWNER with an ACCEPTED membership."""
    cleaned = _clean_group_name(name)

    now = datetime.now(timezone.utc)
    group = Group(
        name=cleaned,
        created_by_id=owner_id,
        invite_code=None,
        created_at=now,
        updated_at=now,
    )
    db.add(group)
    await db.flush()

    owner = GroupMembership(
        group_id=group.id,
        user_id=owner_id,
        role=GroupRole.OWNER,
        status=MembershipStatus.ACCEPTED,
        created_at=now,
        joined_at=now,
    )
    db.add(owner)
    await db.flush()

    logger.info("Group created: %s (id=%d, owner=%d)", cleaned, group.id, owner_id)
    return group


async def update_group(db: AsyncSession, viewer_id: int, group_id: int, name: str) -> Group:
    """Rename a group (creator only)."""
    group = await get_group_or_404(db, group_id)
    visibility.assert_group_owner(group, viewer_id, "update the group")

    group.name = _clean_group_name(name)
    group.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return group


async def delete_group(db: AsyncSession, viewer_id: int, group_id: int) -> None:
    """Delete a group with its memberships, shares, comments, reactions and read checkpoints."""
    group = await get_group_or_404(db, group_id)
    visibility.assert_group_owner(group, viewer_id, "delete the group")

    await db.delete(group)
    await db.flush()
    logger.info("Group %d deleted by owner %d", group_id, viewer_id)


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


async def invite_to_group(
    db: AsyncSession, viewer_id: int, group_id: int, user_id: int
) -> GroupMembership:
    """Owner invites a user; creates a PENDING membership."""
    group = await get_group_or_404(db, group_id)
    visibility.assert_group_owner(group, viewer_id, "invite members")

    target = await user_service.get_user(db, user_id)
    if target is None:
        raise NotFoundError("User not found")

    existing = await store.get_membership(db, group_id, user_id)
    if existing is not None:
        if existing.status == MembershipStatus.ACCEPTED:
            raise InvariantViolationError("User is already a member of this group")
        raise InvariantViolationError("User already has a pending invite to this group")

    membership = GroupMembership(
        group_id=group_id,
        user_id=user_id,
        role=GroupRole.MEMBER,
        status=MembershipStatus.PENDING,
        invited_by_id=viewer_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(membership)
    await db.flush()

    logger.info("User %d invited user %d to group %d", viewer_id, user_id, group_id)
    return membership


async def accept_invite(db: AsyncSession, viewer_id: int, group_id: int) -> GroupMembership:
    membership = await store.get_membership(db, group_id, viewer_id)
    if membership is None:
        raise NotFoundError("No invite found for this group")
    if membership.status == MembershipStatus.ACCEPTED:
        raise InvariantViolationError("You are already a member of this group")

    membership.status = MembershipStatus.ACCEPTED
    membership.joined_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("User %d accepted invite to group %d", viewer_id, group_id)
    return membership


async def decline_invite(db: AsyncSession, viewer_id: int, group_id: int) -> None:
    membership = await store.get_membership(db, group_id, viewer_id)
    if membership is None:
        raise NotFoundError("No invite found for this group")
    if membership.status == MembershipStatus.ACCEPTED:
        raise InvariantViolationError(
            f"You are already a member. Use POST /api/v1/groups/{group_id}/leave instead."
        )

    await db.delete(membership)
    await db.flush()


async def leave_group(db: AsyncSession, viewer_id: int, group_id: int) -> None:
    membership = await store.get_membership(db, group_id, viewer_id)
    if membership is None:
        raise NotFoundError("You are not a member of this group")
    if membership.role == GroupRole.OWNER:
        raise InvariantViolationError("Group owner cannot leave. Delete the group instead.")

    await db.delete(membership)
    await db.flush()
    logger.info("User %d left group %d", viewer_id, group_id)


async def remove_member(db: AsyncSession, viewer_id: int, group_id: int, user_id: int) -> None:
    """Owner removes someone else's membership, pending or accepted."""
    group = await get_group_or_404(db, group_id)
    visibility.assert_group_owner(group, viewer_id, "remove members")

    if user_id == viewer_id:
        raise InvariantViolationError(
            f"Cannot remove yourself. Use DELETE /api/v1/groups/{group_id} instead."
        )

    membership = await store.get_membership(db, group_id, user_id)
    if membership is None:
        raise NotFoundError("User is not a member of this group")

    await db.delete(membership)
    await db.flush()
    logger.info("Owner %d removed user %d from group %d", viewer_id, user_id, group_id)


# ---------------------------------------------------------------------------
# Invite codes
# ---------------------------------------------------------------------------


async def regenerate_invite_code(db: AsyncSession, viewer_id: int, group_id: int) -> Group:
    """Issue a fresh invite code. The previous one stops resolving."""
    group = await get_group_or_404(db, group_id)
    await visibility.assert_group_member(db, group_id, viewer_id, "generate an invite link")

    group.invite_code = await generate_unique_code(db, "group")
    group.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return group


async def _group_for_code(db: AsyncSession, code: str) -> Group:
    normalized = normalize_invite_code(code or "")
    group = await store.get_group_by_invite_code(db, normalized) if normalized else None
    if group is None:
        raise InvalidInviteCodeError()
    return group


async def join_group_by_code(db: AsyncSession, viewer_id: int, code: str) -> GroupMembership:
    """Join via invite code. A pending invite to the same group is accepted instead."""
    group = await _group_for_code(db, code)
    now = datetime.now(timezone.utc)

    existing = await store.get_membership(db, group.id, viewer_id)
    if existing is not None:
        if existing.status == MembershipStatus.ACCEPTED:
            raise InvariantViolationError("You are already a member of this group")
        existing.status = MembershipStatus.ACCEPTED
        existing.joined_at = now
        await db.flush()
        logger.info("User %d accepted invite to group %d via code", viewer_id, group.id)
        return existing

    membership = GroupMembership(
        group_id=group.id,
        user_id=viewer_id,
        role=GroupRole.MEMBER,
        status=MembershipStatus.ACCEPTED,
        created_at=now,
        joined_at=now,
    )
    db.add(membership)
    await db.flush()

    logger.info("User %d joined group %d via invite code", viewer_id, group.id)
    return membership


async def preview_group_by_code(db: AsyncSession, code: str) -> GroupPreview | None:
    """Public lookup behind an invite link. Unknown codes give None, not an error."""
    normalized = normalize_invite_code(code or "")
    if not normalized:
        return None
    group = await store.get_group_by_invite_code(db, normalized)
    if group is None:
        return None
    return GroupPreview(
        id=group.id,
        name=group.name,
        member_count=await store.count_accepted_members(db, group.id),
    )


async def create_account_and_join_group(
    db: AsyncSession, code: str, display_name: str, email: str
) -> tuple[User, GroupMembership]:
    """Sign up through an invite link: new user plus ACCEPTED membership."""
    user_service.clean_display_name(display_name)
    normalized_email = user_service.normalize_email(email)
    if await user_service.get_user_by_email(db, normalized_email) is not None:
        raise InvariantViolationError("An account with this email already exists")

    group = await _group_for_code(db, code)

    user = await user_service.create_user(db, display_name=display_name, email=normalized_email)

    now = datetime.now(timezone.utc)
    membership = GroupMembership(
        group_id=group.id,
        user_id=user.id,
        role=GroupRole.MEMBER,
        status=MembershipStatus.ACCEPTED,
        created_at=now,
        joined_at=now,
    )
    db.add(membership)
    await db.flush()

    logger.info("User %d signed up and joined group %d", user.id, group.id)
    return user, membership


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_my_groups(db: AsyncSession, user_id: int) -> list[Group]:
    """Groups the user has ACCEPTED membership in, most recently joined first."""
    result = await db.execute(
        select(Group)
        .join(GroupMembership, GroupMembership.group_id == Group.id)
        .where(
            GroupMembership.user_id == user_id,
            GroupMembership.status == MembershipStatus.ACCEPTED,
        )
        .order_by(GroupMembership.joined_at.desc(), GroupMembership.id.desc())
    )
    return list(result.scalars().all())


async def list_pending_invites(db: AsyncSession, user_id: int) -> list[GroupMembership]:
    result = await db.execute(
        select(GroupMembership)
        .where(
            GroupMembership.user_id == user_id,
            GroupMembership.status == MembershipStatus.PENDING,
        )
        .order_by(GroupMembership.created_at.desc(), GroupMembership.id.desc())
    )
    return list(result.scalars().all())


async def list_members(db: AsyncSession, viewer_id: int, group_id: int) -> list[GroupMembership]:
    """Every membership in the group, pending included. Members only."""
    await get_group_or_404(db, group_id)
    await visibility.assert_group_member(db, group_id, viewer_id, "view its members")
    return await store.list_group_memberships(db, group_id)


async def member_count(db: AsyncSession, group_id: int) -> int:
    return await store.count_accepted_members(db, group_id)


async def my_role(db: AsyncSession, viewer_id: int | None, group_id: int) -> GroupRole | None:
    """The viewer's role, only once their membership is ACCEPTED."""
    if viewer_id is None:
        return None
    membership = await store.get_membership(db, group_id, viewer_id)
    if membership is None or membership.status != MembershipStatus.ACCEPTED:
        return None
    return membership.role


async def my_latest_score(db: AsyncSession, viewer_id: int | None, group_id: int) -> LifeScore | None:
    """The viewer's most recent score shared to this group."""
    if viewer_id is None:
        return None
    result = await db.execute(
        select(LifeScore)
        .join(LifeScoreGroup, LifeScoreGroup.life_score_id == LifeScore.id)
        .where(LifeScoreGroup.group_id == group_id, LifeScore.user_id == viewer_id)
        .order_by(LifeScore.created_at.desc(), LifeScore.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def recent_activity(db: AsyncSession, group_id: int) -> RecentActivity | None:
    """Latest score posted to the group by anyone, the viewer included."""
    result = await db.execute(
        select(LifeScore, User)
        .join(LifeScoreGroup, LifeScoreGroup.life_score_id == LifeScore.id)
        .join(User, User.id == LifeScore.user_id)
        .where(LifeScoreGroup.group_id == group_id)
        .order_by(LifeScore.created_at.desc(), LifeScore.id.desc())
        .limit(1)
    )
    row = result.first()
    if row is None:
        return None
    score, user = row
    return RecentActivity(user=user, score=score.score, created_at=score.created_at)

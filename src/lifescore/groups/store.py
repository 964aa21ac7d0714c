"""Membership store: plain lookups over memberships, shares and connections.

No policy lives here; the visibility engine and the services decide what a
lookup result means.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import (
    ConnectionStatus,
    Group,
    GroupMembership,
    LifeScore,
    LifeScoreGroup,
    MembershipStatus,
    ScoreComment,
    UserConnection,
)


async def get_group(db: AsyncSession, group_id: int) -> Group | None:
    """Get a group by ID."""
    result = await db.execute(select(Group).where(Group.id == group_id))
    return result.scalar_one_or_none()


async def get_group_by_invite_code(db: AsyncSession, normalized_code: str) -> Group | None:
    """Get a group by an already-normalized invite code."""
    result = await db.execute(select(Group).where(Group.invite_code == normalized_code))
    return result.scalar_one_or_none()


async def get_membership(db: AsyncSession, group_id: int, user_id: int) -> GroupMembership | None:
    """Get the (single) membership row linking a user to a group, in any status."""
    result = await db.execute(
        select(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def is_accepted_member(db: AsyncSession, group_id: int, user_id: int) -> bool:
    membership = await get_membership(db, group_id, user_id)
    return membership is not None and membership.status == MembershipStatus.ACCEPTED


async def accepted_group_ids(db: AsyncSession, user_id: int, group_ids: Iterable[int]) -> set[int]:
    """Subset of group_ids in which the user holds an ACCEPTED membership."""
    ids = list(group_ids)
    if not ids:
        return set()
    result = await db.execute(
        select(GroupMembership.group_id).where(
            GroupMembership.user_id == user_id,
            GroupMembership.status == MembershipStatus.ACCEPTED,
            GroupMembership.group_id.in_(ids),
        )
    )
    return set(result.scalars().all())


async def count_accepted_members(db: AsyncSession, group_id: int) -> int:
    result = await db.execute(
        select(func.count(GroupMembership.id)).where(
            GroupMembership.group_id == group_id,
            GroupMembership.status == MembershipStatus.ACCEPTED,
        )
    )
    return result.scalar_one()


async def list_group_memberships(db: AsyncSession, group_id: int) -> list[GroupMembership]:
    """All memberships of a group (pending included), oldest first."""
    result = await db.execute(
        select(GroupMembership)
        .where(GroupMembership.group_id == group_id)
        .order_by(GroupMembership.created_at.asc(), GroupMembership.id.asc())
    )
    return list(result.scalars().all())


async def get_life_score(db: AsyncSession, life_score_id: int) -> LifeScore | None:
    result = await db.execute(select(LifeScore).where(LifeScore.id == life_score_id))
    return result.scalar_one_or_none()


async def get_comment(db: AsyncSession, comment_id: int) -> ScoreComment | None:
    result = await db.execute(select(ScoreComment).where(ScoreComment.id == comment_id))
    return result.scalar_one_or_none()


async def is_score_in_group(db: AsyncSession, life_score_id: int, group_id: int) -> bool:
    """True if the score was shared to the group."""
    result = await db.execute(
        select(LifeScoreGroup.id).where(
            LifeScoreGroup.life_score_id == life_score_id,
            LifeScoreGroup.group_id == group_id,
        )
    )
    return result.first() is not None


async def shared_group_ids(db: AsyncSession, life_score_id: int) -> list[int]:
    """IDs of every group the score was shared to."""
    result = await db.execute(
        select(LifeScoreGroup.group_id)
        .where(LifeScoreGroup.life_score_id == life_score_id)
        .order_by(LifeScoreGroup.id.asc())
    )
    return list(result.scalars().all())


async def shares_group_with_viewer(db: AsyncSession, life_score_id: int, viewer_id: int) -> bool:
    """True if the score is shared to at least one group the viewer has ACCEPTED membership in."""
    result = await db.execute(
        select(LifeScoreGroup.id)
        .join(
            GroupMembership,
            and_(
                GroupMembership.group_id == LifeScoreGroup.group_id,
                GroupMembership.user_id == viewer_id,
                GroupMembership.status == MembershipStatus.ACCEPTED,
            ),
        )
        .where(LifeScoreGroup.life_score_id == life_score_id)
        .limit(1)
    )
    return result.first() is not None


async def get_connection_between(db: AsyncSession, user_a: int, user_b: int) -> UserConnection | None:
    """The connection row between two users, whichever of them sent it."""
    result = await db.execute(
        select(UserConnection)
        .where(
            or_(
                and_(UserConnection.sender_id == user_a, UserConnection.receiver_id == user_b),
                and_(UserConnection.sender_id == user_b, UserConnection.receiver_id == user_a),
            )
        )
        .order_by(UserConnection.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def are_connected(db: AsyncSession, user_a: int, user_b: int) -> bool:
    connection = await get_connection_between(db, user_a, user_b)
    return connection is not None and connection.status == ConnectionStatus.ACCEPTED

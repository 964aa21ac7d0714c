"""Visibility engine: who may see or touch what.

Rules (group model):
- A score's status text is visible to its owner, and to anyone holding an
  ACCEPTED membership in at least one group the score was shared to.
  Everyone else gets None, never an error.
- A comment thread is the pair (score, group). The score owner and ACCEPTED
  members of the group may read and write it, but only if the score was
  actually shared to that group.
- Reactions follow the thread rule of their parent.
- Group administration (rename, delete, invite, remove) belongs to the
  group's creator.

Nothing is cached: every check reads current membership rows, so removing
someone from a group takes effect on their next request.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import Group, LifeScore, ScoreComment
from lifescore.errors import InvariantViolationError, UnauthorizedError
from lifescore.groups import store


async def can_view_status_text(db: AsyncSession, viewer_id: int | None, score: LifeScore) -> bool:
    if viewer_id is not None and viewer_id == score.user_id:
        return True
    if viewer_id is None:
        return False
    return await store.shares_group_with_viewer(db, score.id, viewer_id)


async def visible_status_text(db: AsyncSession, viewer_id: int | None, score: LifeScore) -> str | None:
    """The score's status text as this viewer is allowed to see it."""
    if score.status_text is None:
        return None
    if await can_view_status_text(db, viewer_id, score):
        return score.status_text
    return None


async def can_access_thread(
    db: AsyncSession, viewer_id: int, score: LifeScore, group_id: int
) -> bool:
    """Permissive form of the thread rule, for field resolution."""
    is_owner = score.user_id == viewer_id
    if not is_owner and not await store.is_accepted_member(db, group_id, viewer_id):
        return False
    return await store.is_score_in_group(db, score.id, group_id)


async def assert_can_access_thread(
    db: AsyncSession,
    viewer_id: int,
    score: LifeScore,
    group_id: int,
    action: str = "view comments",
) -> None:
    """Strict form of the thread rule.

    Raises:
        UnauthorizedError: viewer is neither the score owner nor an ACCEPTED member.
        InvariantViolationError: the score was never shared to the group.
    """
    is_owner = score.user_id == viewer_id
    if not is_owner and not await store.is_accepted_member(db, group_id, viewer_id):
        raise UnauthorizedError(f"You must be a member of this group to {action}")
    if not await store.is_score_in_group(db, score.id, group_id):
        raise InvariantViolationError("This score was not posted to this group")


async def assert_can_react_to_comment(
    db: AsyncSession, viewer_id: int, comment: ScoreComment, score_owner_id: int
) -> None:
    """Comment reactions: score owner or ACCEPTED member of the comment's group."""
    if score_owner_id == viewer_id:
        return
    if not await store.is_accepted_member(db, comment.group_id, viewer_id):
        raise UnauthorizedError("You must be a member of this group to react")


def assert_group_owner(group: Group, viewer_id: int, action: str) -> None:
    """Creator-only group administration."""
    if group.created_by_id != viewer_id:
        raise UnauthorizedError(f"Only the group owner can {action}")


async def assert_group_member(db: AsyncSession, group_id: int, viewer_id: int, action: str) -> None:
    if not await store.is_accepted_member(db, group_id, viewer_id):
        raise UnauthorizedError(f"You must be a member of the group to {action}")



# ---------------------------------------------------------------------------
# Friend-pair rule (connection model)
# ---------------------------------------------------------------------------


async def can_view_status_text_legacy(db: AsyncSession, viewer_id: int | None, score: LifeScore) -> bool:
    """Status text under the connection model: owner, or an ACCEPTED connection with the owner."""
    if viewer_id is None:
        return False
    if viewer_id == score.user_id:
        return True
    return await store.are_connected(db, viewer_id, score.user_id)


async def assert_friend_or_owner(db: AsyncSession, viewer_id: int, score: LifeScore) -> None:
    if not await can_view_status_text_legacy(db, viewer_id, score):
        raise UnauthorizedError("You must be connected with this user to view their score")

"""Emoji reactions on scores (per group) and on comments.

Each user holds at most one reaction per subject. Toggling with the same
emoji removes it, a different emoji replaces it in place, and no reaction
yet creates one. Creation is an upsert on the subject's unique key, so two
overlapping "add" requests from the same user end up as one row.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import CommentReaction, ScoreReaction, User
from lifescore.db.upsert import insert_for
from lifescore.errors import NotFoundError, ValidationError
from lifescore.groups import store
from lifescore.social import visibility

logger = logging.getLogger(__name__)

MAX_EMOJI_LENGTH = 8


class ReactionAction(str, enum.Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    REPLACED = "REPLACED"


@dataclass
class ToggleResult:
    action: ReactionAction
    reaction: ScoreReaction | CommentReaction | None = None


@dataclass
class ReactionSummary:
    """One emoji's tally on a subject, from the viewer's point of view."""

    emoji: str
    count: int = 0
    has_reacted: bool = False
    users: list[User] = field(default_factory=list)


def validate_emoji(emoji: str) -> str:
    """Return the trimmed emoji, or raise ValidationError."""
    trimmed = (emoji or "").strip()
    if not trimmed or len(trimmed) > MAX_EMOJI_LENGTH:
        raise ValidationError("Invalid emoji")
    return trimmed


# ---------------------------------------------------------------------------
# Score reactions
# ---------------------------------------------------------------------------


async def _find_score_reaction(
    db: AsyncSession, life_score_id: int, user_id: int, group_id: int
) -> ScoreReaction | None:
    result = await db.execute(
        select(ScoreReaction).where(
            ScoreReaction.life_score_id == life_score_id,
            ScoreReaction.user_id == user_id,
            ScoreReaction.group_id == group_id,
        )
    )
    return result.scalar_one_or_none()


async def toggle_score_reaction(
    db: AsyncSession, viewer_id: int, life_score_id: int, group_id: int, emoji: str
) -> ToggleResult:
    """Add, replace or remove the viewer's reaction on a score within one group."""
    trimmed = validate_emoji(emoji)

    score = await store.get_life_score(db, life_score_id)
    if score is None:
        raise NotFoundError("Life score not found")

    await visibility.assert_can_access_thread(db, viewer_id, score, group_id, action="react")

    existing = await _find_score_reaction(db, life_score_id, viewer_id, group_id)
    if existing is not None:
        if existing.emoji == trimmed:
            await db.delete(existing)
            await db.flush()
            logger.debug("User %d removed reaction on score %d", viewer_id, life_score_id)
            return ToggleResult(action=ReactionAction.REMOVED)
        existing.emoji = trimmed
        await db.flush()
        return ToggleResult(action=ReactionAction.REPLACED, reaction=existing)

    stmt = insert_for(db, ScoreReaction).values(
        life_score_id=life_score_id,
        user_id=viewer_id,
        group_id=group_id,
        emoji=trimmed,
        created_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["life_score_id", "user_id", "group_id"],
        set_={"emoji": stmt.excluded.emoji},
    )
    await db.execute(stmt)

    result = await db.execute(
        select(ScoreReaction)
        .where(
            ScoreReaction.life_score_id == life_score_id,
            ScoreReaction.user_id == viewer_id,
            ScoreReaction.group_id == group_id,
        )
        .execution_options(populate_existing=True)
    )
    reaction = result.scalar_one()
    logger.debug("User %d reacted %s on score %d", viewer_id, trimmed, life_score_id)
    return ToggleResult(action=ReactionAction.ADDED, reaction=reaction)


async def score_reaction_summary(
    db: AsyncSession, life_score_id: int, group_id: int, viewer_id: int | None
) -> list[ReactionSummary]:
    result = await db.execute(
        select(ScoreReaction, User)
        .join(User, User.id == ScoreReaction.user_id)
        .where(
            ScoreReaction.life_score_id == life_score_id,
            ScoreReaction.group_id == group_id,
        )
        .order_by(ScoreReaction.id.asc())
    )
    return _summarize(result.all(), viewer_id)


async def my_score_reaction(
    db: AsyncSession, life_score_id: int, group_id: int, viewer_id: int | None
) -> ScoreReaction | None:
    if viewer_id is None:
        return None
    return await _find_score_reaction(db, life_score_id, viewer_id, group_id)


# ---------------------------------------------------------------------------
# Comment reactions
# ---------------------------------------------------------------------------


async def _find_comment_reaction(
    db: AsyncSession, comment_id: int, user_id: int
) -> CommentReaction | None:
    result = await db.execute(
        select(CommentReaction).where(
            CommentReaction.comment_id == comment_id,
            CommentReaction.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def toggle_comment_reaction(
    db: AsyncSession, viewer_id: int, comment_id: int, emoji: str
) -> ToggleResult:
    """Add, replace or remove the viewer's reaction on a comment."""
    trimmed = validate_emoji(emoji)

    comment = await store.get_comment(db, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")

    score = await store.get_life_score(db, comment.life_score_id)
    if score is None:
        raise NotFoundError("Life score not found")

    await visibility.assert_can_react_to_comment(db, viewer_id, comment, score.user_id)

    existing = await _find_comment_reaction(db, comment_id, viewer_id)
    if existing is not None:
        if existing.emoji == trimmed:
            await db.delete(existing)
            await db.flush()
            return ToggleResult(action=ReactionAction.REMOVED)
        existing.emoji = trimmed
        await db.flush()
        return ToggleResult(action=ReactionAction.REPLACED, reaction=existing)

    stmt = insert_for(db, CommentReaction).values(
        comment_id=comment_id,
        user_id=viewer_id,
        emoji=trimmed,
        created_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["comment_id", "user_id"],
        set_={"emoji": stmt.excluded.emoji},
    )
    await db.execute(stmt)

    result = await db.execute(
        select(CommentReaction)
        .where(
            CommentReaction.comment_id == comment_id,
            CommentReaction.user_id == viewer_id,
        )
        .execution_options(populate_existing=True)
    )
    return ToggleResult(action=ReactionAction.ADDED, reaction=result.scalar_one())


async def comment_reaction_summary(
    db: AsyncSession, comment_id: int, viewer_id: int | None
) -> list[ReactionSummary]:
    result = await db.execute(
        select(CommentReaction, User)
        .join(User, User.id == CommentReaction.user_id)
        .where(CommentReaction.comment_id == comment_id)
        .order_by(CommentReaction.id.asc())
    )
    return _summarize(result.all(), viewer_id)


async def my_comment_reaction(
    db: AsyncSession, comment_id: int, viewer_id: int | None
) -> CommentReaction | None:
    if viewer_id is None:
        return None
    return await _find_comment_reaction(db, comment_id, viewer_id)


def _summarize(rows: list[Any], viewer_id: int | None) -> list[ReactionSummary]:
    """Group (reaction, user) rows by emoji, keeping first-appearance order."""
    summaries: dict[str, ReactionSummary] = {}
    for reaction, user in rows:
        summary = summaries.setdefault(reaction.emoji, ReactionSummary(emoji=reaction.emoji))
        summary.count += 1
        summary.users.append(user)
        if viewer_id is not None and reaction.user_id == viewer_id:
            summary.has_reacted = True
    return list(summaries.values())

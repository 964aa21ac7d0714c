"""Comments on shared scores.

Every comment belongs to one (score, group) thread. Writing and reading a
thread both go through the strict thread rule in the visibility engine.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import LifeScore, ScoreComment
from lifescore.errors import NotFoundError, UnauthorizedError, ValidationError
from lifescore.groups import store
from lifescore.social import visibility

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500


def _clean_content(content: str | None, media_url: str | None) -> str | None:
    trimmed = content.strip() if content is not None else ""
    if not trimmed and not media_url:
        raise ValidationError("Comment content cannot be empty")
    if len(trimmed) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be {MAX_COMMENT_LENGTH} characters or less")
    return trimmed or None


async def add_comment(
    db: AsyncSession,
    viewer_id: int,
    life_score_id: int,
    group_id: int,
    content: str | None,
    media_url: str | None = None,
) -> ScoreComment:
    """Post a comment into a score's thread for one group."""
    cleaned = _clean_content(content, media_url)

    score = await store.get_life_score(db, life_score_id)
    if score is None:
        raise NotFoundError("Life score not found")

    await visibility.assert_can_access_thread(db, viewer_id, score, group_id, action="comment")

    comment = ScoreComment(
        life_score_id=life_score_id,
        group_id=group_id,
        author_id=viewer_id,
        content=cleaned,
        media_url=media_url or None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(comment)
    await db.flush()

    logger.info("User %d commented on score %d in group %d", viewer_id, life_score_id, group_id)
    return comment


async def list_comments(
    db: AsyncSession, viewer_id: int, life_score_id: int, group_id: int
) -> list[ScoreComment]:
    """A thread's comments, oldest first."""
    score = await store.get_life_score(db, life_score_id)
    if score is None:
        raise NotFoundError("Life score not found")

    await visibility.assert_can_access_thread(db, viewer_id, score, group_id)

    result = await db.execute(
        select(ScoreComment)
        .where(
            ScoreComment.life_score_id == life_score_id,
            ScoreComment.group_id == group_id,
        )
        .order_by(ScoreComment.created_at.asc(), ScoreComment.id.asc())
    )
    return list(result.scalars().all())


async def delete_comment(db: AsyncSession, viewer_id: int, comment_id: int) -> None:
    """Delete a comment. Only its author may do this."""
    comment = await store.get_comment(db, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.author_id != viewer_id:
        raise UnauthorizedError("You can only delete your own comments")

    await db.delete(comment)
    await db.flush()
    logger.info("User %d deleted comment %d", viewer_id, comment_id)


def is_owner_comment(comment: ScoreComment, score: LifeScore) -> bool:
    """True when the score's owner wrote the comment."""
    return comment.author_id == score.user_id


async def count_comments(db: AsyncSession, life_score_id: int, group_id: int) -> int:
    result = await db.execute(
        select(func.count(ScoreComment.id)).where(
            ScoreComment.life_score_id == life_score_id,
            ScoreComment.group_id == group_id,
        )
    )
    return result.scalar_one()

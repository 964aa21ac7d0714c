"""Read-state tracking for group comment threads.

A thread is one (score, group) pair. Each viewer holds at most one read
checkpoint per thread; a comment is unread when someone else wrote it after
that checkpoint. Viewers with no checkpoint have every foreign comment
unread.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import LifeScore, LifeScoreGroup, ScoreComment, ScoreCommentRead
from lifescore.db.upsert import insert_for

logger = logging.getLogger(__name__)


async def get_checkpoint(
    db: AsyncSession, viewer_id: int, life_score_id: int, group_id: int
) -> ScoreCommentRead | None:
    result = await db.execute(
        select(ScoreCommentRead).where(
            ScoreCommentRead.user_id == viewer_id,
            ScoreCommentRead.life_score_id == life_score_id,
            ScoreCommentRead.group_id == group_id,
        )
    )
    return result.scalar_one_or_none()


async def unread_count(db: AsyncSession, viewer_id: int, life_score_id: int, group_id: int) -> int:
    """Count comments in the thread written by others after the viewer's checkpoint."""
    checkpoint = await get_checkpoint(db, viewer_id, life_score_id, group_id)

    stmt = select(func.count(ScoreComment.id)).where(
        ScoreComment.life_score_id == life_score_id,
        ScoreComment.group_id == group_id,
        ScoreComment.author_id != viewer_id,
    )
    if checkpoint is not None:
        stmt = stmt.where(ScoreComment.created_at > checkpoint.last_read_at)

    result = await db.execute(stmt)
    return result.scalar_one()


async def mark_read(
    db: AsyncSession,
    viewer_id: int,
    life_score_id: int,
    group_id: int,
    now: datetime | None = None,
) -> ScoreCommentRead:
    """Move the viewer's checkpoint for this thread to ``now``.

    Idempotent: a second call overwrites the same row. The checkpoint is
    not kept monotonic; passing an older ``now`` moves it backwards.
    """
    read_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

    stmt = insert_for(db, ScoreCommentRead).values(
        user_id=viewer_id,
        life_score_id=life_score_id,
        group_id=group_id,
        last_read_at=read_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "life_score_id", "group_id"],
        set_={"last_read_at": stmt.excluded.last_read_at},
    )
    await db.execute(stmt)

    result = await db.execute(
        select(ScoreCommentRead)
        .where(
            ScoreCommentRead.user_id == viewer_id,
            ScoreCommentRead.life_score_id == life_score_id,
            ScoreCommentRead.group_id == group_id,
        )
        .execution_options(populate_existing=True)
    )
    checkpoint = result.scalar_one()

    logger.debug("User %d read score %d in group %d", viewer_id, life_score_id, group_id)
    return checkpoint


async def latest_score_ids_in_group(db: AsyncSession, group_id: int) -> list[int]:
    """Each poster's most recent score shared to the group.

    Ties on created_at go to the higher score id.
    """
    result = await db.execute(
        select(LifeScore.id, LifeScore.user_id)
        .join(LifeScoreGroup, LifeScoreGroup.life_score_id == LifeScore.id)
        .where(LifeScoreGroup.group_id == group_id)
        .order_by(LifeScore.created_at.desc(), LifeScore.id.desc())
    )

    latest: dict[int, int] = {}
    for score_id, user_id in result.all():
        latest.setdefault(user_id, score_id)
    return list(latest.values())


async def group_unread_count(db: AsyncSession, viewer_id: int, group_id: int) -> int:
    """Unread comments across the group, counting only each poster's latest score.

    Older scores in the group never contribute, even if their threads have
    unread comments. The viewer's own latest score is included.
    """
    score_ids = await latest_score_ids_in_group(db, group_id)
    if not score_ids:
        return 0

    stmt = (
        select(func.count(ScoreComment.id))
        .outerjoin(
            ScoreCommentRead,
            and_(
                ScoreCommentRead.user_id == viewer_id,
                ScoreCommentRead.life_score_id == ScoreComment.life_score_id,
                ScoreCommentRead.group_id == ScoreComment.group_id,
            ),
        )
        .where(
            ScoreComment.group_id == group_id,
            ScoreComment.life_score_id.in_(score_ids),
            ScoreComment.author_id != viewer_id,
            or_(
                ScoreCommentRead.id.is_(None),
                ScoreComment.created_at > ScoreCommentRead.last_read_at,
            ),
        )
    )
    result = await db.execute(stmt)
    return result.scalar_one()

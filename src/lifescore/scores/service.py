"""Life score posting and retrieval.

A score is shared to groups at post time and never re-targeted afterwards.
Sharing is all-or-nothing: if the poster is not an ACCEPTED member of every
requested group, nothing is written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import LifeScore, LifeScoreGroup
from lifescore.errors import NotFoundError, UnauthorizedError, ValidationError
from lifescore.groups import store
from lifescore.social import visibility

logger = logging.getLogger(__name__)

MIN_SCORE = 0.0
MAX_SCORE = 10.0
MAX_STATUS_TEXT_LENGTH = 280


def _validate(score: float, status_text: str | None) -> str | None:
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise ValidationError("Score must be between 0 and 10")
    if status_text is None:
        return None
    trimmed = status_text.strip()
    if len(trimmed) > MAX_STATUS_TEXT_LENGTH:
        raise ValidationError(f"Status text must be {MAX_STATUS_TEXT_LENGTH} characters or less")
    return trimmed or None


async def post_life_score(
    db: AsyncSession,
    poster_id: int,
    score: float,
    status_text: str | None = None,
    media_url: str | None = None,
    group_ids: list[int] | None = None,
) -> tuple[LifeScore, list[int]]:
    """
    Post a score and share it to the given groups.

    Returns:
        The new score and the ids of the groups it was shared to, in request
        order with duplicates dropped.

    Raises:
        ValidationError: Score outside [0, 10] or status text too long.
        UnauthorizedError: Poster is not an ACCEPTED member of one of the groups.
    """
    cleaned_status = _validate(score, status_text)
    targets = list(dict.fromkeys(group_ids or []))

    if targets:
        allowed = await store.accepted_group_ids(db, poster_id, targets)
        missing = [gid for gid in targets if gid not in allowed]
        if missing:
            raise UnauthorizedError(
                f"You must be a member of every group you share to (not a member of {missing})"
            )

    now = datetime.now(timezone.utc)
    life_score = LifeScore(
        user_id=poster_id,
        score=score,
        status_text=cleaned_status,
        media_url=media_url or None,
        created_at=now,
    )
    db.add(life_score)
    await db.flush()

    for group_id in targets:
        db.add(LifeScoreGroup(life_score_id=life_score.id, group_id=group_id, created_at=now))
    await db.flush()

    logger.info(
        "User %d posted score %d (value=%.1f, groups=%s)", poster_id, life_score.id, score, targets
    )
    return life_score, targets


async def delete_life_score(db: AsyncSession, viewer_id: int, life_score_id: int) -> None:
    """Delete a score along with its shares, comments, reactions and read checkpoints."""
    life_score = await store.get_life_score(db, life_score_id)
    if life_score is None:
        raise NotFoundError("Life score not found")
    if life_score.user_id != viewer_id:
        raise UnauthorizedError("You can only delete your own scores")

    await db.delete(life_score)
    await db.flush()
    logger.info("User %d deleted score %d", viewer_id, life_score_id)


async def get_life_score(db: AsyncSession, life_score_id: int) -> LifeScore:
    life_score = await store.get_life_score(db, life_score_id)
    if life_score is None:
        raise NotFoundError("Life score not found")
    return life_score


async def list_user_scores(db: AsyncSession, user_id: int, limit: int = 50) -> list[LifeScore]:
    """A user's scores, newest first."""
    result = await db.execute(
        select(LifeScore)
        .where(LifeScore.user_id == user_id)
        .order_by(LifeScore.created_at.desc(), LifeScore.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def current_score(db: AsyncSession, user_id: int) -> LifeScore | None:
    scores = await list_user_scores(db, user_id, limit=1)
    return scores[0] if scores else None


async def scores_for_group(
    db: AsyncSession, viewer_id: int, group_id: int, limit: int = 50
) -> list[LifeScore]:
    """Scores shared to a group, newest first. ACCEPTED members only."""
    if await store.get_group(db, group_id) is None:
        raise NotFoundError("Group not found")
    await visibility.assert_group_member(db, group_id, viewer_id, "view its scores")

    result = await db.execute(
        select(LifeScore)
        .join(LifeScoreGroup, LifeScoreGroup.life_score_id == LifeScore.id)
        .where(LifeScoreGroup.group_id == group_id)
        .order_by(LifeScore.created_at.desc(), LifeScore.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())

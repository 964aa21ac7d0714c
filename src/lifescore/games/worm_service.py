"""Worm arcade high scores.

Only personal bests are stored: a submission that does not beat the
player's best for the level is answered with the existing best and nothing
is written. Level leaderboards are cached in Redis and dropped whenever a
new personal best on that level is committed.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import User, WormScore
from lifescore.errors import ValidationError
from lifescore.games.schemas import WormLeaderboardEntry

logger = logging.getLogger(__name__)

# Cache keys
LEADERBOARD_CACHE_PREFIX = "worm:leaderboard"
LEADERBOARD_TTL = 120  # 2 minutes

MAX_LEADERBOARD_LIMIT = 100


def _cache_key(level_id: str, limit: int) -> str:
    return f"{LEADERBOARD_CACHE_PREFIX}:{level_id}:{limit}"


def _clean_level_id(level_id: str) -> str:
    cleaned = (level_id or "").strip()
    if not cleaned or len(cleaned) > 64:
        raise ValidationError("Invalid level id")
    return cleaned


async def my_high_score(db: AsyncSession, user_id: int, level_id: str) -> WormScore | None:
    """The user's best run on a level."""
    result = await db.execute(
        select(WormScore)
        .where(WormScore.user_id == user_id, WormScore.level_id == level_id)
        .order_by(WormScore.score.desc(), WormScore.created_at.asc(), WormScore.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def submit_worm_score(
    db: AsyncSession,
    user_id: int,
    level_id: str,
    score: int,
) -> tuple[WormScore, bool]:
    """
    Record a run.

    Returns:
        (best score row, whether this run set a new personal best).
    """
    level = _clean_level_id(level_id)
    if score < 0:
        raise ValidationError("Score cannot be negative")

    existing = await my_high_score(db, user_id, level)
    if existing is not None and existing.score >= score:
        return existing, False

    worm_score = WormScore(
        user_id=user_id,
        level_id=level,
        score=score,
        created_at=datetime.now(timezone.utc),
    )
    db.add(worm_score)
    await db.flush()

    logger.info("User %d set worm best %d on level %s", user_id, score, level)
    return worm_score, True


async def level_high_scores(
    db: AsyncSession,
    redis: object,
    level_id: str,
    limit: int = 10,
) -> list[WormLeaderboardEntry]:
    """Best run per player on a level, highest first. Earlier runs win ties."""
    level = _clean_level_id(level_id)
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))

    cache_key = _cache_key(level, limit)
    if redis is not None:
        try:
            cached = await redis.get(cache_key)  # type: ignore[attr-defined]
            if cached:
                return [WormLeaderboardEntry(**entry) for entry in json.loads(cached)]
        except Exception:
            logger.debug("Leaderboard cache miss", exc_info=True)

    result = await db.execute(
        select(WormScore, User.display_name)
        .join(User, User.id == WormScore.user_id)
        .where(WormScore.level_id == level)
        .order_by(WormScore.score.desc(), WormScore.created_at.asc(), WormScore.id.asc())
    )

    entries: list[WormLeaderboardEntry] = []
    seen: set[int] = set()
    for worm_score, display_name in result.all():
        if worm_score.user_id in seen:
            continue
        seen.add(worm_score.user_id)
        entries.append(WormLeaderboardEntry(
            rank=len(entries) + 1,
            user_id=worm_score.user_id,
            display_name=display_name,
            score=worm_score.score,
            created_at=worm_score.created_at,
        ))
        if len(entries) >= limit:
            break

    if redis is not None:
        try:
            payload = json.dumps([entry.model_dump(mode="json") for entry in entries])
            await redis.setex(cache_key, LEADERBOARD_TTL, payload)  # type: ignore[attr-defined]
        except Exception:
            logger.warning("Failed to cache worm leaderboard", exc_info=True)

    return entries


async def invalidate_leaderboard(redis: object, level_id: str) -> None:
    """Drop every cached leaderboard for the level. Call after the new best is committed."""
    if redis is None:
        return
    try:
        keys = [key async for key in redis.scan_iter(f"{LEADERBOARD_CACHE_PREFIX}:{level_id}:*")]  # type: ignore[attr-defined]
        if keys:
            await redis.delete(*keys)  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to invalidate worm leaderboard cache", exc_info=True)

"""Arcade API: worm high scores per level."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.dependencies import get_current_user
from lifescore.config import get_settings
from lifescore.database import get_session
from lifescore.db.models import User, WormScore
from lifescore.games.schemas import (
    WormLeaderboardResponse,
    WormScoreResponse,
    WormScoreSubmitRequest,
)
from lifescore.games.worm_service import (
    invalidate_leaderboard,
    level_high_scores,
    my_high_score,
    submit_worm_score,
)
from lifescore.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/worm-scores", tags=["Arcade"])


def _worm_score_response(row: WormScore) -> WormScoreResponse:
    return WormScoreResponse(
        id=row.id,
        user_id=row.user_id,
        level_id=row.level_id,
        score=row.score,
        created_at=row.created_at,
    )


@router.post("", response_model=WormScoreResponse)
async def submit_score_endpoint(
    body: WormScoreSubmitRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Submit a run. Always answers with the player's best for the level."""
    best, is_new_best = await submit_worm_score(db, user.id, body.level_id, body.score)
    if is_new_best:
        await db.commit()
        await invalidate_leaderboard(get_optional_redis(), best.level_id)
    return _worm_score_response(best)


@router.get("/{level_id}/me", response_model=WormScoreResponse | None)
async def my_high_score_endpoint(
    level_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    best = await my_high_score(db, user.id, level_id)
    return _worm_score_response(best) if best else None


@router.get("/{level_id}", response_model=WormLeaderboardResponse)
async def level_leaderboard_endpoint(
    level_id: str,
    limit: int | None = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Public leaderboard: each player's best run, highest first."""
    if limit is None:
        limit = get_settings().worm_leaderboard_default_limit
    entries = await level_high_scores(db, get_optional_redis(), level_id, limit)
    return WormLeaderboardResponse(level_id=level_id, entries=entries)

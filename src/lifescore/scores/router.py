"""Life score API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.dependencies import get_current_user, get_optional_user
from lifescore.database import get_session
from lifescore.db.models import LifeScore, User
from lifescore.scores.schemas import (
    GroupScoreResponse,
    LifeScoreResponse,
    PostScoreRequest,
    ThreadState,
)
from lifescore.scores.service import delete_life_score, get_life_score, post_life_score
from lifescore.social import reactions, visibility
from lifescore.social.comments import count_comments
from lifescore.social.read_state import unread_count
from lifescore.social.router import reaction_summary_responses
from lifescore.users.router import user_summary
from lifescore.users.service import get_users_by_ids

router = APIRouter(prefix="/api/v1/scores", tags=["Scores"])


# ── Helpers ──


async def _thread_state(
    db: AsyncSession, score: LifeScore, group_id: int, viewer_id: int
) -> ThreadState:
    summaries = await reactions.score_reaction_summary(db, score.id, group_id, viewer_id)
    mine = await reactions.my_score_reaction(db, score.id, group_id, viewer_id)
    return ThreadState(
        group_id=group_id,
        comment_count=await count_comments(db, score.id, group_id),
        unread_count=await unread_count(db, viewer_id, score.id, group_id),
        reactions=reaction_summary_responses(summaries),
        my_reaction=mine.emoji if mine else None,
    )


async def build_group_score_responses(
    db: AsyncSession, scores: list[LifeScore], group_id: int, viewer_id: int
) -> list[GroupScoreResponse]:
    """Score cards for a group feed the viewer is already authorized to read."""
    users = await get_users_by_ids(db, [s.user_id for s in scores])
    responses = []
    for score in scores:
        responses.append(GroupScoreResponse(
            id=score.id,
            user=user_summary(users[score.user_id]),
            score=score.score,
            status_text=await visibility.visible_status_text(db, viewer_id, score),
            media_url=score.media_url,
            created_at=score.created_at,
            thread=await _thread_state(db, score, group_id, viewer_id),
        ))
    return responses


# ── Endpoints ──


@router.post("", response_model=LifeScoreResponse, status_code=201)
async def post_score_endpoint(
    body: PostScoreRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Post a score, optionally sharing it to groups the poster belongs to."""
    score, group_ids = await post_life_score(
        db,
        user.id,
        body.score,
        status_text=body.status_text,
        media_url=body.media_url,
        group_ids=body.group_ids,
    )
    await db.commit()
    return LifeScoreResponse(
        id=score.id,
        user=user_summary(user),
        score=score.score,
        status_text=score.status_text,
        media_url=score.media_url,
        created_at=score.created_at,
        group_ids=group_ids,
    )


@router.get("/{life_score_id}", response_model=GroupScoreResponse)
async def get_score_endpoint(
    life_score_id: int,
    group_id: int | None = Query(None),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Get one score. Public, but the status text is only filled in for viewers
    allowed to see it.

    With ``group_id``, the viewer's thread state for that group is attached
    when they have access to the thread; otherwise it is left out.
    """
    score = await get_life_score(db, life_score_id)
    viewer_id = viewer.id if viewer else None
    owner = (await get_users_by_ids(db, [score.user_id]))[score.user_id]

    thread = None
    if group_id is not None and viewer_id is not None:
        if await visibility.can_access_thread(db, viewer_id, score, group_id):
            thread = await _thread_state(db, score, group_id, viewer_id)

    return GroupScoreResponse(
        id=score.id,
        user=user_summary(owner),
        score=score.score,
        status_text=await visibility.visible_status_text(db, viewer_id, score),
        media_url=score.media_url,
        created_at=score.created_at,
        thread=thread,
    )


@router.delete("/{life_score_id}", status_code=204)
async def delete_score_endpoint(
    life_score_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await delete_life_score(db, user.id, life_score_id)
    await db.commit()

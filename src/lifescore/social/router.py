"""Social API endpoints: comment threads, reactions and read state.

A thread is addressed as /scores/{life_score_id}/groups/{group_id}.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.dependencies import get_current_user
from lifescore.database import get_session
from lifescore.db.models import LifeScore, ScoreComment, User
from lifescore.errors import NotFoundError
from lifescore.groups import store
from lifescore.social import comments, reactions, read_state, visibility
from lifescore.social.schemas import (
    CommentResponse,
    CreateCommentRequest,
    MarkReadResponse,
    ReactionSummaryResponse,
    ToggleReactionRequest,
    ToggleReactionResponse,
    UnreadCountResponse,
)
from lifescore.users.router import user_summary
from lifescore.users.service import get_users_by_ids

router = APIRouter(prefix="/api/v1", tags=["Social"])


# ── Helpers ──


def reaction_summary_responses(
    summaries: list[reactions.ReactionSummary],
) -> list[ReactionSummaryResponse]:
    return [
        ReactionSummaryResponse(
            emoji=s.emoji,
            count=s.count,
            has_reacted=s.has_reacted,
            users=[user_summary(u) for u in s.users],
        )
        for s in summaries
    ]


def _toggle_response(result: reactions.ToggleResult) -> ToggleReactionResponse:
    return ToggleReactionResponse(
        action=result.action.value,
        emoji=result.reaction.emoji if result.reaction is not None else None,
    )


async def _build_comment_responses(
    db: AsyncSession, thread: list[ScoreComment], score: LifeScore, viewer_id: int
) -> list[CommentResponse]:
    authors = await get_users_by_ids(db, [c.author_id for c in thread])
    responses = []
    for comment in thread:
        summaries = await reactions.comment_reaction_summary(db, comment.id, viewer_id)
        mine = await reactions.my_comment_reaction(db, comment.id, viewer_id)
        responses.append(CommentResponse(
            id=comment.id,
            life_score_id=comment.life_score_id,
            group_id=comment.group_id,
            author=user_summary(authors[comment.author_id]),
            content=comment.content,
            media_url=comment.media_url,
            created_at=comment.created_at,
            is_owner_comment=comments.is_owner_comment(comment, score),
            reactions=reaction_summary_responses(summaries),
            my_reaction=mine.emoji if mine else None,
        ))
    return responses


async def _score_or_404(db: AsyncSession, life_score_id: int):
    score = await store.get_life_score(db, life_score_id)
    if score is None:
        raise NotFoundError("Life score not found")
    return score


# ── Comments ──


@router.get(
    "/scores/{life_score_id}/groups/{group_id}/comments",
    response_model=list[CommentResponse],
)
async def list_comments_endpoint(
    life_score_id: int,
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """A thread's comments, oldest first."""
    thread = await comments.list_comments(db, user.id, life_score_id, group_id)
    score = await _score_or_404(db, life_score_id)
    return await _build_comment_responses(db, thread, score, user.id)


@router.post(
    "/scores/{life_score_id}/groups/{group_id}/comments",
    response_model=CommentResponse,
    status_code=201,
)
async def add_comment_endpoint(
    life_score_id: int,
    group_id: int,
    body: CreateCommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    comment = await comments.add_comment(
        db, user.id, life_score_id, group_id, body.content, body.media_url
    )
    await db.commit()
    score = await _score_or_404(db, life_score_id)
    return (await _build_comment_responses(db, [comment], score, user.id))[0]


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment_endpoint(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await comments.delete_comment(db, user.id, comment_id)
    await db.commit()


# ── Reactions ──


@router.get(
    "/scores/{life_score_id}/groups/{group_id}/reactions",
    response_model=list[ReactionSummaryResponse],
)
async def score_reactions_endpoint(
    life_score_id: int,
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Reaction tallies on a score within one group."""
    score = await _score_or_404(db, life_score_id)
    await visibility.assert_can_access_thread(db, user.id, score, group_id, action="view reactions")
    summaries = await reactions.score_reaction_summary(db, life_score_id, group_id, user.id)
    return reaction_summary_responses(summaries)


@router.post(
    "/scores/{life_score_id}/groups/{group_id}/reactions",
    response_model=ToggleReactionResponse,
)
async def toggle_score_reaction_endpoint(
    life_score_id: int,
    group_id: int,
    body: ToggleReactionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Same emoji again removes it; a different one replaces it."""
    result = await reactions.toggle_score_reaction(db, user.id, life_score_id, group_id, body.emoji)
    await db.commit()
    return _toggle_response(result)


@router.post("/comments/{comment_id}/reactions", response_model=ToggleReactionResponse)
async def toggle_comment_reaction_endpoint(
    comment_id: int,
    body: ToggleReactionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    result = await reactions.toggle_comment_reaction(db, user.id, comment_id, body.emoji)
    await db.commit()
    return _toggle_response(result)


# ── Read state ──


@router.post(
    "/scores/{life_score_id}/groups/{group_id}/read",
    response_model=MarkReadResponse,
)
async def mark_read_endpoint(
    life_score_id: int,
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark the thread read up to now."""
    score = await _score_or_404(db, life_score_id)
    await visibility.assert_can_access_thread(db, user.id, score, group_id)
    checkpoint = await read_state.mark_read(db, user.id, life_score_id, group_id)
    await db.commit()
    return MarkReadResponse(
        life_score_id=checkpoint.life_score_id,
        group_id=checkpoint.group_id,
        last_read_at=checkpoint.last_read_at,
    )


@router.get(
    "/scores/{life_score_id}/groups/{group_id}/unread-count",
    response_model=UnreadCountResponse,
)
async def thread_unread_count_endpoint(
    life_score_id: int,
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    score = await _score_or_404(db, life_score_id)
    await visibility.assert_can_access_thread(db, user.id, score, group_id)
    return UnreadCountResponse(
        unread_count=await read_state.unread_count(db, user.id, life_score_id, group_id)
    )

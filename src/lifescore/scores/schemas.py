"""Pydantic schemas for life score endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from lifescore.social.schemas import ReactionSummaryResponse
from lifescore.users.schemas import UserSummary


class PostScoreRequest(BaseModel):
    score: float
    status_text: str | None = None
    media_url: str | None = None
    group_ids: list[int] = Field(default_factory=list)


class LifeScoreResponse(BaseModel):
    id: int
    user: UserSummary
    score: float
    status_text: str | None = None  # None unless the viewer may see it
    media_url: str | None = None
    created_at: datetime
    group_ids: list[int] = []  # Only filled in on the post response


class ThreadState(BaseModel):
    """Per-viewer state of one score's thread in one group."""

    group_id: int
    comment_count: int
    unread_count: int
    reactions: list[ReactionSummaryResponse] = []
    my_reaction: str | None = None


class GroupScoreResponse(LifeScoreResponse):
    thread: ThreadState | None = None

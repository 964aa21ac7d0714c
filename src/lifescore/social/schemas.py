"""Pydantic schemas for comments, reactions, read state and connections."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from lifescore.users.schemas import UserSummary


# --- Reactions ---


class ToggleReactionRequest(BaseModel):
    emoji: str = Field(..., max_length=32)


class ReactionSummaryResponse(BaseModel):
    emoji: str
    count: int
    has_reacted: bool
    users: list[UserSummary] = []


class ToggleReactionResponse(BaseModel):
    action: str  # ADDED, REMOVED, REPLACED
    emoji: str | None = None  # None once removed


# --- Comments ---


class CreateCommentRequest(BaseModel):
    content: str | None = None
    media_url: str | None = None


class CommentResponse(BaseModel):
    id: int
    life_score_id: int
    group_id: int
    author: UserSummary
    content: str | None = None
    media_url: str | None = None
    created_at: datetime
    is_owner_comment: bool
    reactions: list[ReactionSummaryResponse] = []
    my_reaction: str | None = None


# --- Read state ---


class MarkReadResponse(BaseModel):
    life_score_id: int
    group_id: int
    last_read_at: datetime


class UnreadCountResponse(BaseModel):
    unread_count: int


# --- Connections ---


class SendConnectionRequest(BaseModel):
    receiver_id: int


class ConnectionResponse(BaseModel):
    id: int
    sender: UserSummary
    receiver: UserSummary
    status: str
    created_at: datetime
    updated_at: datetime


class ConnectionStatusResponse(BaseModel):
    status: str | None = None
    connection_id: int | None = None
    is_connected: bool
    can_connect: bool

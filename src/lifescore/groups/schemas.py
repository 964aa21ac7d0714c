"""Pydantic schemas for group endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from lifescore.users.schemas import MeResponse, UserSummary


class CreateGroupRequest(BaseModel):
    name: str = Field(..., max_length=100)


class UpdateGroupRequest(BaseModel):
    name: str = Field(..., max_length=100)


class InviteMemberRequest(BaseModel):
    user_id: int


class JoinByCodeRequest(BaseModel):
    code: str = Field(..., max_length=64)


class JoinWithNewAccountRequest(BaseModel):
    code: str = Field(..., max_length=64)
    display_name: str = Field(..., max_length=64)
    email: str = Field(..., max_length=320)


class MembershipResponse(BaseModel):
    id: int
    group_id: int
    user: UserSummary
    role: str
    status: str
    invited_by_id: int | None = None
    created_at: datetime
    joined_at: datetime | None = None


class ScoreBrief(BaseModel):
    id: int
    score: float
    created_at: datetime


class RecentActivityResponse(BaseModel):
    user: UserSummary
    score: float
    created_at: datetime


class GroupResponse(BaseModel):
    id: int
    name: str
    created_by_id: int
    invite_code: str | None = None  # Only shown to accepted members
    member_count: int
    my_role: str | None = None
    my_latest_score: ScoreBrief | None = None
    recent_activity: RecentActivityResponse | None = None
    unread_comment_count: int = 0
    created_at: datetime
    updated_at: datetime


class GroupPreviewResponse(BaseModel):
    id: int
    name: str
    member_count: int


class NewAccountJoinResponse(BaseModel):
    token: str
    user: MeResponse
    membership: MembershipResponse

"""Pydantic schemas for the arcade API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class WormScoreSubmitRequest(BaseModel):
    level_id: str = Field(..., min_length=1, max_length=64)
    score: int = Field(..., ge=0)


class WormScoreResponse(BaseModel):
    id: int
    user_id: int
    level_id: str
    score: int
    created_at: datetime


class WormLeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    display_name: str
    score: int
    created_at: datetime


class WormLeaderboardResponse(BaseModel):
    level_id: str
    entries: list[WormLeaderboardEntry]

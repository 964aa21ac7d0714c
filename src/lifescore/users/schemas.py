"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    display_name: str = Field(..., max_length=64)
    avatar_url: str | None = None
    email: str | None = Field(None, max_length=320)


class UpdateUserRequest(BaseModel):
    display_name: str | None = Field(None, max_length=64)
    avatar_url: str | None = None


class LoginRequest(BaseModel):
    code: str = Field(..., max_length=64)


class UserSummary(BaseModel):
    """The public face of a user, embedded in other responses."""

    id: int
    display_name: str
    avatar_url: str | None = None


class UserResponse(UserSummary):
    created_at: datetime


class MeResponse(UserResponse):
    """Only ever returned to the user themselves."""

    unique_code: str | None = None
    email: str | None = None
    features: list[str] = []
    updated_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: MeResponse


class LoginCodeResponse(BaseModel):
    code: str

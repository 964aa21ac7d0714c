"""Memorable codes for group invite links and user logins.

Codes look like `happy-tree-42`: easy to read aloud, case-insensitive, and
always stored lowercase. Lookups normalise the input the same way.
"""

from __future__ import annotations

import secrets
import time
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import Group, User

ADJECTIVES = (
    "happy", "bright", "calm", "swift", "quiet", "bold", "wise", "kind",
    "cool", "warm", "soft", "wild", "free", "pure", "clear", "fair",
    "blue", "red", "green", "gold", "pink", "teal", "jade", "ruby",
)

NOUNS = (
    "star", "moon", "sun", "wind", "wave", "tree", "leaf", "bird",
    "fish", "bear", "wolf", "lion", "eagle", "hawk", "owl", "fox",
    "river", "ocean", "forest", "mountain", "valley", "meadow", "garden",
)

MAX_ATTEMPTS = 100

CodeKind = Literal["group", "user"]


def generate_code() -> str:
    """Generate an `adjective-noun-NN` code (NN in 0..99)."""
    return f"{secrets.choice(ADJECTIVES)}-{secrets.choice(NOUNS)}-{secrets.randbelow(100)}"


def normalize_invite_code(code: str) -> str:
    """Normalize a code for case-insensitive lookup."""
    return code.strip().lower()


async def _code_taken(db: AsyncSession, kind: CodeKind, code: str) -> bool:
    column = Group.invite_code if kind == "group" else User.unique_code
    result = await db.execute(select(column).where(column == code))
    return result.first() is not None


async def generate_unique_code(db: AsyncSession, kind: CodeKind = "user") -> str:
    """Generate a code not yet used by any group (or user, for login codes).

    The word space is small, so after MAX_ATTEMPTS collisions a 4-digit
    timestamp suffix is appended instead of failing.
    """
    code = generate_code()
    for _ in range(MAX_ATTEMPTS):
        if not await _code_taken(db, kind, code):
            return code
        code = generate_code()
    return f"{code}-{str(int(time.time() * 1000))[-4:]}"

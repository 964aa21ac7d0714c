"""Unit tests for memorable code generation."""

from __future__ import annotations

import re

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.groups import invite_codes
from lifescore.groups.invite_codes import generate_code, generate_unique_code, normalize_invite_code

CODE_PATTERN = re.compile(r"^[a-z]+-[a-z]+-\d{1,2}$")


class TestGenerateCode:

    def test_shape(self):
        for _ in range(50):
            assert CODE_PATTERN.match(generate_code())

    def test_normalize(self):
        assert normalize_invite_code("  Happy-Tree-42 ") == "happy-tree-42"


class TestGenerateUniqueCode:

    @pytest.mark.asyncio
    async def test_skips_taken_codes(self, db_session: AsyncSession, make_user, monkeypatch):
        user = await make_user("taken")
        user.unique_code = "calm-owl-7"
        await db_session.flush()
        codes = iter(["calm-owl-7", "calm-owl-7", "bold-fox-3"])
        monkeypatch.setattr(invite_codes, "generate_code", lambda: next(codes))

        assert await generate_unique_code(db_session, "user") == "bold-fox-3"

    @pytest.mark.asyncio
    async def test_group_codes_only_check_group_namespace(self, db_session: AsyncSession, make_user, monkeypatch):
        user = await make_user("taken")
        user.unique_code = "calm-owl-7"
        await db_session.flush()
        monkeypatch.setattr(invite_codes, "generate_code", lambda: "calm-owl-7")

        # Only the group namespace is checked here
        assert await generate_unique_code(db_session, "group") == "calm-owl-7"

    @pytest.mark.asyncio
    async def test_timestamp_suffix_after_exhausting_attempts(self, db_session: AsyncSession, make_user, monkeypatch):
        user = await make_user("taken")
        user.unique_code = "calm-owl-7"
        await db_session.flush()
        monkeypatch.setattr(invite_codes, "generate_code", lambda: "calm-owl-7")

        code = await generate_unique_code(db_session, "user")

        assert re.match(r"^calm-owl-7-\d{4}$", code)

"""Unit tests for comment threads."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.errors import InvariantViolationError, NotFoundError, UnauthorizedError, ValidationError
from lifescore.groups.service import accept_invite, create_group, invite_to_group, leave_group
from lifescore.scores.service import post_life_score
from lifescore.social import comments


async def _thread(db: AsyncSession, make_user):
    owner = await make_user("owner")
    member = await make_user("member")
    group = await create_group(db, owner.id, "Crew")
    await invite_to_group(db, owner.id, group.id, member.id)
    await accept_invite(db, member.id, group.id)
    score, _ = await post_life_score(db, owner.id, 6, status_text="so-so", group_ids=[group.id])
    return owner, member, group, score


class TestAddComment:

    @pytest.mark.asyncio
    async def test_member_and_owner_comment_in_order(self, db_session: AsyncSession, make_user):
        owner, member, group, score = await _thread(db_session, make_user)

        first = await comments.add_comment(db_session, member.id, score.id, group.id, "  chin up  ")
        second = await comments.add_comment(db_session, owner.id, score.id, group.id, "thanks")

        assert first.content == "chin up"
        thread = await comments.list_comments(db_session, member.id, score.id, group.id)
        assert [c.id for c in thread] == [first.id, second.id]
        assert comments.is_owner_comment(second, score)
        assert not comments.is_owner_comment(first, score)
        assert await comments.count_comments(db_session, score.id, group.id) == 2

    @pytest.mark.asyncio
    async def test_media_only_comment(self, db_session: AsyncSession, make_user):
        _, member, group, score = await _thread(db_session, make_user)

        comment = await comments.add_comment(
            db_session, member.id, score.id, group.id, "", media_url="https://cdn.example/cat.gif"
        )

        assert comment.content is None
        assert comment.media_url == "https://cdn.example/cat.gif"

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(self, db_session: AsyncSession, make_user):
        _, member, group, score = await _thread(db_session, make_user)

        with pytest.raises(ValidationError, match="cannot be empty"):
            await comments.add_comment(db_session, member.id, score.id, group.id, "   ")

    @pytest.mark.asyncio
    async def test_long_comment_rejected(self, db_session: AsyncSession, make_user):
        _, member, group, score = await _thread(db_session, make_user)

        with pytest.raises(ValidationError, match="500 characters"):
            await comments.add_comment(db_session, member.id, score.id, group.id, "a" * 501)

    @pytest.mark.asyncio
    async def test_outsider_cannot_comment(self, db_session: AsyncSession, make_user):
        _, _, group, score = await _thread(db_session, make_user)
        outsider = await make_user("outsider")

        with pytest.raises(UnauthorizedError, match="member of this group to comment"):
            await comments.add_comment(db_session, outsider.id, score.id, group.id, "hi")

    @pytest.mark.asyncio
    async def test_former_member_loses_thread(self, db_session: AsyncSession, make_user):
        _, member, group, score = await _thread(db_session, make_user)
        await comments.add_comment(db_session, member.id, score.id, group.id, "before")

        await leave_group(db_session, member.id, group.id)

        with pytest.raises(UnauthorizedError):
            await comments.list_comments(db_session, member.id, score.id, group.id)

    @pytest.mark.asyncio
    async def test_comment_on_unshared_group(self, db_session: AsyncSession, make_user):
        owner, _, _, score = await _thread(db_session, make_user)
        other = await create_group(db_session, owner.id, "Other")

        with pytest.raises(InvariantViolationError):
            await comments.add_comment(db_session, owner.id, score.id, other.id, "hello?")

    @pytest.mark.asyncio
    async def test_comment_on_missing_score(self, db_session: AsyncSession, make_user):
        user = await make_user("someone")

        with pytest.raises(NotFoundError, match="Life score not found"):
            await comments.add_comment(db_session, user.id, 404, 1, "hi")


class TestDeleteComment:

    @pytest.mark.asyncio
    async def test_only_author_deletes(self, db_session: AsyncSession, make_user):
        owner, member, group, score = await _thread(db_session, make_user)
        comment = await comments.add_comment(db_session, member.id, score.id, group.id, "oops")

        # Not even the score owner
        with pytest.raises(UnauthorizedError, match="your own comments"):
            await comments.delete_comment(db_session, owner.id, comment.id)

        await comments.delete_comment(db_session, member.id, comment.id)
        assert await comments.count_comments(db_session, score.id, group.id) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_comment(self, db_session: AsyncSession, make_user):
        user = await make_user("someone")

        with pytest.raises(NotFoundError, match="Comment not found"):
            await comments.delete_comment(db_session, user.id, 99)

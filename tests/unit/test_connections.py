"""Unit tests for friend connections."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import ConnectionStatus
from lifescore.errors import InvariantViolationError, NotFoundError, UnauthorizedError, ValidationError
from lifescore.groups import store
from lifescore.social import connections


class TestSendRequest:

    @pytest.mark.asyncio
    async def test_send_creates_pending(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")

        request = await connections.send_connection_request(db_session, alice.id, bob.id)

        assert request.status == ConnectionStatus.PENDING
        assert [r.id for r in await connections.list_sent_requests(db_session, alice.id)] == [request.id]
        assert [r.id for r in await connections.list_pending_requests(db_session, bob.id)] == [request.id]

    @pytest.mark.asyncio
    async def test_pair_is_unique_in_either_direction(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await connections.send_connection_request(db_session, alice.id, bob.id)

        with pytest.raises(InvariantViolationError, match="already exists"):
            await connections.send_connection_request(db_session, bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_cannot_request_self_or_unknown(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")

        with pytest.raises(ValidationError):
            await connections.send_connection_request(db_session, alice.id, alice.id)
        with pytest.raises(NotFoundError, match="User not found"):
            await connections.send_connection_request(db_session, alice.id, 5555)

    @pytest.mark.asyncio
    async def test_rejected_pair_can_be_re_requested(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        first = await connections.send_connection_request(db_session, alice.id, bob.id)
        await connections.reject_connection_request(db_session, bob.id, first.id)

        again = await connections.send_connection_request(db_session, bob.id, alice.id)

        assert again.id == first.id
        assert again.sender_id == bob.id
        assert again.receiver_id == alice.id
        assert again.status == ConnectionStatus.PENDING


class TestAnswerRequest:

    @pytest.mark.asyncio
    async def test_only_receiver_answers(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        request = await connections.send_connection_request(db_session, alice.id, bob.id)

        with pytest.raises(UnauthorizedError, match="accept connection requests sent to you"):
            await connections.accept_connection_request(db_session, alice.id, request.id)

        accepted = await connections.accept_connection_request(db_session, bob.id, request.id)
        assert accepted.status == ConnectionStatus.ACCEPTED
        assert await store.are_connected(db_session, alice.id, bob.id)
        assert await store.are_connected(db_session, bob.id, alice.id)

        with pytest.raises(InvariantViolationError, match="no longer pending"):
            await connections.reject_connection_request(db_session, bob.id, request.id)
        with pytest.raises(InvariantViolationError, match="already connected"):
            await connections.send_connection_request(db_session, alice.id, bob.id)

    @pytest.mark.asyncio
    async def test_missing_request(self, db_session: AsyncSession, make_user):
        bob = await make_user("bob")

        with pytest.raises(NotFoundError, match="Connection request not found"):
            await connections.accept_connection_request(db_session, bob.id, 1234)


class TestRemoveConnection:

    @pytest.mark.asyncio
    async def test_either_party_removes(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        request = await connections.send_connection_request(db_session, alice.id, bob.id)
        await connections.accept_connection_request(db_session, bob.id, request.id)

        with pytest.raises(UnauthorizedError):
            await connections.remove_connection(db_session, carol.id, request.id)

        await connections.remove_connection(db_session, bob.id, request.id)

        assert not await store.are_connected(db_session, alice.id, bob.id)
        assert await connections.list_connections(db_session, alice.id) == []


class TestConnectionStatus:

    @pytest.mark.asyncio
    async def test_status_views(self, db_session: AsyncSession, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")

        none = await connections.connection_status(db_session, alice.id, bob.id)
        assert none.status is None
        assert none.can_connect is True
        assert none.is_connected is False

        request = await connections.send_connection_request(db_session, alice.id, bob.id)
        pending = await connections.connection_status(db_session, bob.id, alice.id)
        assert pending.status == ConnectionStatus.PENDING
        assert pending.connection_id == request.id
        assert pending.can_connect is False

        await connections.accept_connection_request(db_session, bob.id, request.id)
        connected = await connections.connection_status(db_session, alice.id, bob.id)
        assert connected.is_connected is True
        assert [c.id for c in await connections.list_connections(db_session, bob.id)] == [request.id]

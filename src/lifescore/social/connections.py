"""Pairwise friend connections.

Rules:
- At most one connection row per unordered pair of users; the service
  looks both directions up before creating one
- Only the receiver answers a PENDING request
- A REJECTED pair can be re-requested by either side; the old row is reused
  and pointed in the new direction
- Either party can remove the connection at any time
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.db.models import ConnectionStatus, User, UserConnection
from lifescore.errors import (
    InvariantViolationError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from lifescore.groups import store

logger = logging.getLogger(__name__)


@dataclass
class ConnectionStatusView:
    status: ConnectionStatus | None
    connection_id: int | None
    is_connected: bool
    can_connect: bool


async def get_connection(db: AsyncSession, connection_id: int) -> UserConnection | None:
    result = await db.execute(select(UserConnection).where(UserConnection.id == connection_id))
    return result.scalar_one_or_none()


async def send_connection_request(db: AsyncSession, sender_id: int, receiver_id: int) -> UserConnection:
    """Send (or re-send after rejection) a connection request."""
    if sender_id == receiver_id:
        raise ValidationError("You cannot send a connection request to yourself")

    receiver = await db.get(User, receiver_id)
    if receiver is None:
        raise NotFoundError("User not found")

    now = datetime.now(timezone.utc)
    existing = await store.get_connection_between(db, sender_id, receiver_id)
    if existing is not None:
        if existing.status == ConnectionStatus.PENDING:
            raise InvariantViolationError("A connection request already exists")
        if existing.status == ConnectionStatus.ACCEPTED:
            raise InvariantViolationError("You are already connected with this user")

        existing.sender_id = sender_id
        existing.receiver_id = receiver_id
        existing.status = ConnectionStatus.PENDING
        existing.updated_at = now
        await db.flush()
        logger.info("User %d re-sent connection request to user %d", sender_id, receiver_id)
        return existing

    connection = UserConnection(
        sender_id=sender_id,
        receiver_id=receiver_id,
        status=ConnectionStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(connection)
    await db.flush()

    logger.info("User %d sent connection request to user %d", sender_id, receiver_id)
    return connection


async def _answer_request(
    db: AsyncSession, viewer_id: int, connection_id: int, verb: str, new_status: ConnectionStatus
) -> UserConnection:
    connection = await get_connection(db, connection_id)
    if connection is None:
        raise NotFoundError("Connection request not found")
    if connection.receiver_id != viewer_id:
        raise UnauthorizedError(f"You can only {verb} connection requests sent to you")
    if connection.status != ConnectionStatus.PENDING:
        raise InvariantViolationError("This connection request is no longer pending")

    connection.status = new_status
    connection.updated_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("User %d %sed connection request %d", viewer_id, verb, connection_id)
    return connection


async def accept_connection_request(db: AsyncSession, viewer_id: int, connection_id: int) -> UserConnection:
    return await _answer_request(db, viewer_id, connection_id, "accept", ConnectionStatus.ACCEPTED)


async def reject_connection_request(db: AsyncSession, viewer_id: int, connection_id: int) -> UserConnection:
    return await _answer_request(db, viewer_id, connection_id, "reject", ConnectionStatus.REJECTED)


async def remove_connection(db: AsyncSession, viewer_id: int, connection_id: int) -> None:
    """Delete a connection in any status. Either party may do this."""
    connection = await get_connection(db, connection_id)
    if connection is None:
        raise NotFoundError("Connection not found")
    if viewer_id not in (connection.sender_id, connection.receiver_id):
        raise UnauthorizedError("You can only remove your own connections")

    await db.delete(connection)
    await db.flush()
    logger.info("User %d removed connection %d", viewer_id, connection_id)


async def list_connections(db: AsyncSession, user_id: int) -> list[UserConnection]:
    """ACCEPTED connections in either direction, newest first."""
    result = await db.execute(
        select(UserConnection)
        .where(
            or_(UserConnection.sender_id == user_id, UserConnection.receiver_id == user_id),
            UserConnection.status == ConnectionStatus.ACCEPTED,
        )
        .order_by(UserConnection.created_at.desc(), UserConnection.id.desc())
    )
    return list(result.scalars().all())


async def list_pending_requests(db: AsyncSession, user_id: int) -> list[UserConnection]:
    """PENDING requests waiting on this user."""
    result = await db.execute(
        select(UserConnection)
        .where(
            UserConnection.receiver_id == user_id,
            UserConnection.status == ConnectionStatus.PENDING,
        )
        .order_by(UserConnection.created_at.desc(), UserConnection.id.desc())
    )
    return list(result.scalars().all())


async def list_sent_requests(db: AsyncSession, user_id: int) -> list[UserConnection]:
    """PENDING requests this user is waiting on."""
    result = await db.execute(
        select(UserConnection)
        .where(
            UserConnection.sender_id == user_id,
            UserConnection.status == ConnectionStatus.PENDING,
        )
        .order_by(UserConnection.created_at.desc(), UserConnection.id.desc())
    )
    return list(result.scalars().all())


async def connection_status(db: AsyncSession, viewer_id: int, other_user_id: int) -> ConnectionStatusView:
    connection = await store.get_connection_between(db, viewer_id, other_user_id)
    if connection is None:
        return ConnectionStatusView(status=None, connection_id=None, is_connected=False, can_connect=True)
    return ConnectionStatusView(
        status=connection.status,
        connection_id=connection.id,
        is_connected=connection.status == ConnectionStatus.ACCEPTED,
        can_connect=False,
    )

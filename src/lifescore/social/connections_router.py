"""Connection API endpoints: friend requests between two users."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.dependencies import get_current_user
from lifescore.database import get_session
from lifescore.db.models import User, UserConnection
from lifescore.social import connections
from lifescore.social.schemas import (
    ConnectionResponse,
    ConnectionStatusResponse,
    SendConnectionRequest,
)
from lifescore.users.router import user_summary
from lifescore.users.service import get_users_by_ids

router = APIRouter(prefix="/api/v1/connections", tags=["Connections"])


async def _build_connection_responses(
    db: AsyncSession, rows: list[UserConnection]
) -> list[ConnectionResponse]:
    users = await get_users_by_ids(db, [r.sender_id for r in rows] + [r.receiver_id for r in rows])
    return [
        ConnectionResponse(
            id=r.id,
            sender=user_summary(users[r.sender_id]),
            receiver=user_summary(users[r.receiver_id]),
            status=r.status.value,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r in rows
    ]


@router.get("", response_model=list[ConnectionResponse])
async def list_connections_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Accepted connections, newest first."""
    return await _build_connection_responses(db, await connections.list_connections(db, user.id))


@router.get("/pending", response_model=list[ConnectionResponse])
async def list_pending_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Requests waiting for the current user's answer."""
    return await _build_connection_responses(db, await connections.list_pending_requests(db, user.id))


@router.get("/sent", response_model=list[ConnectionResponse])
async def list_sent_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await _build_connection_responses(db, await connections.list_sent_requests(db, user.id))


@router.get("/status/{user_id}", response_model=ConnectionStatusResponse)
async def connection_status_endpoint(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    view = await connections.connection_status(db, user.id, user_id)
    return ConnectionStatusResponse(
        status=view.status.value if view.status else None,
        connection_id=view.connection_id,
        is_connected=view.is_connected,
        can_connect=view.can_connect,
    )


@router.post("", response_model=ConnectionResponse, status_code=201)
async def send_request_endpoint(
    body: SendConnectionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    connection = await connections.send_connection_request(db, user.id, body.receiver_id)
    await db.commit()
    return (await _build_connection_responses(db, [connection]))[0]


@router.post("/{connection_id}/accept", response_model=ConnectionResponse)
async def accept_request_endpoint(
    connection_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    connection = await connections.accept_connection_request(db, user.id, connection_id)
    await db.commit()
    return (await _build_connection_responses(db, [connection]))[0]


@router.post("/{connection_id}/reject", response_model=ConnectionResponse)
async def reject_request_endpoint(
    connection_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    connection = await connections.reject_connection_request(db, user.id, connection_id)
    await db.commit()
    return (await _build_connection_responses(db, [connection]))[0]


@router.delete("/{connection_id}", status_code=204)
async def remove_connection_endpoint(
    connection_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await connections.remove_connection(db, user.id, connection_id)
    await db.commit()

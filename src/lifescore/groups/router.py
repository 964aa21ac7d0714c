"""Group API endpoints: lifecycle, membership, invite codes and group feeds."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifescore.auth.dependencies import get_current_user
from lifescore.auth.jwt import create_access_token
from lifescore.database import get_session
from lifescore.db.models import Group, GroupMembership, User
from lifescore.errors import UnauthorizedError
from lifescore.groups import service, store
from lifescore.groups.schemas import (
    CreateGroupRequest,
    GroupPreviewResponse,
    GroupResponse,
    InviteMemberRequest,
    JoinByCodeRequest,
    JoinWithNewAccountRequest,
    MembershipResponse,
    NewAccountJoinResponse,
    RecentActivityResponse,
    ScoreBrief,
    UpdateGroupRequest,
)
from lifescore.scores.router import build_group_score_responses
from lifescore.scores.schemas import GroupScoreResponse
from lifescore.scores.service import scores_for_group
from lifescore.social.read_state import group_unread_count
from lifescore.social.schemas import UnreadCountResponse
from lifescore.users.router import me_response, user_summary
from lifescore.users.service import get_users_by_ids

router = APIRouter(prefix="/api/v1/groups", tags=["Groups"])


# ── Helpers ──


async def _build_group_response(db: AsyncSession, group: Group, viewer_id: int) -> GroupResponse:
    """Build a GroupResponse with the viewer-specific fields filled in."""
    role = await service.my_role(db, viewer_id, group.id)
    is_member = role is not None

    latest = await service.my_latest_score(db, viewer_id, group.id) if is_member else None
    activity = await service.recent_activity(db, group.id) if is_member else None

    return GroupResponse(
        id=group.id,
        name=group.name,
        created_by_id=group.created_by_id,
        invite_code=group.invite_code if is_member else None,
        member_count=await service.member_count(db, group.id),
        my_role=role.value if role else None,
        my_latest_score=ScoreBrief(
            id=latest.id, score=latest.score, created_at=latest.created_at
        ) if latest else None,
        recent_activity=RecentActivityResponse(
            user=user_summary(activity.user),
            score=activity.score,
            created_at=activity.created_at,
        ) if activity else None,
        unread_comment_count=await group_unread_count(db, viewer_id, group.id) if is_member else 0,
        created_at=group.created_at,
        updated_at=group.updated_at,
    )


async def _build_membership_responses(
    db: AsyncSession, memberships: list[GroupMembership]
) -> list[MembershipResponse]:
    users = await get_users_by_ids(db, [m.user_id for m in memberships])
    return [
        MembershipResponse(
            id=m.id,
            group_id=m.group_id,
            user=user_summary(users[m.user_id]),
            role=m.role.value,
            status=m.status.value,
            invited_by_id=m.invited_by_id,
            created_at=m.created_at,
            joined_at=m.joined_at,
        )
        for m in memberships
        if m.user_id in users
    ]


# ── Lifecycle ──


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group_endpoint(
    body: CreateGroupRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Create a group. The creator becomes its owner."""
    group = await service.create_group(db, user.id, body.name)
    await db.commit()
    return await _build_group_response(db, group, user.id)


@router.get("", response_model=list[GroupResponse])
async def list_my_groups_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    groups = await service.list_my_groups(db, user.id)
    return [await _build_group_response(db, g, user.id) for g in groups]


@router.get("/invites", response_model=list[MembershipResponse])
async def list_pending_invites_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Invites waiting on the current user."""
    invites = await service.list_pending_invites(db, user.id)
    return await _build_membership_responses(db, invites)


@router.get("/by-code/{code}", response_model=GroupPreviewResponse | None)
async def preview_group_endpoint(
    code: str,
    db: AsyncSession = Depends(get_session),
):
    """Public preview behind an invite link. Unknown codes return null."""
    preview = await service.preview_group_by_code(db, code)
    if preview is None:
        return None
    return GroupPreviewResponse(id=preview.id, name=preview.name, member_count=preview.member_count)


@router.post("/join", response_model=MembershipResponse)
async def join_by_code_endpoint(
    body: JoinByCodeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    membership = await service.join_group_by_code(db, user.id, body.code)
    await db.commit()
    return (await _build_membership_responses(db, [membership]))[0]


@router.post("/join/new-account", response_model=NewAccountJoinResponse, status_code=201)
async def join_with_new_account_endpoint(
    body: JoinWithNewAccountRequest,
    db: AsyncSession = Depends(get_session),
):
    """Sign up and join in one step. Returns a token for the new account."""
    user, membership = await service.create_account_and_join_group(
        db, body.code, body.display_name, body.email
    )
    await db.commit()
    return NewAccountJoinResponse(
        token=create_access_token(user.id),
        user=me_response(user),
        membership=(await _build_membership_responses(db, [membership]))[0],
    )


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Group detail. Visible to members and to users with a pending invite."""
    group = await service.get_group_or_404(db, group_id)
    membership = await store.get_membership(db, group_id, user.id)
    if membership is None:
        raise UnauthorizedError("You must be a member of the group to view it")
    return await _build_group_response(db, group, user.id)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group_endpoint(
    group_id: int,
    body: UpdateGroupRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    group = await service.update_group(db, user.id, group_id, body.name)
    await db.commit()
    return await _build_group_response(db, group, user.id)


@router.delete("/{group_id}", status_code=204)
async def delete_group_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_group(db, user.id, group_id)
    await db.commit()


# ── Membership ──


@router.get("/{group_id}/members", response_model=list[MembershipResponse])
async def list_members_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    memberships = await service.list_members(db, user.id, group_id)
    return await _build_membership_responses(db, memberships)


@router.post("/{group_id}/invites", response_model=MembershipResponse, status_code=201)
async def invite_member_endpoint(
    group_id: int,
    body: InviteMemberRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    membership = await service.invite_to_group(db, user.id, group_id, body.user_id)
    await db.commit()
    return (await _build_membership_responses(db, [membership]))[0]


@router.post("/{group_id}/accept", response_model=MembershipResponse)
async def accept_invite_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    membership = await service.accept_invite(db, user.id, group_id)
    await db.commit()
    return (await _build_membership_responses(db, [membership]))[0]


@router.post("/{group_id}/decline", status_code=204)
async def decline_invite_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await service.decline_invite(db, user.id, group_id)
    await db.commit()


@router.post("/{group_id}/leave", status_code=204)
async def leave_group_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await service.leave_group(db, user.id, group_id)
    await db.commit()


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member_endpoint(
    group_id: int,
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Owner removes a member or withdraws a pending invite."""
    await service.remove_member(db, user.id, group_id, user_id)
    await db.commit()


@router.post("/{group_id}/invite-code", response_model=GroupResponse)
async def regenerate_invite_code_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Issue a new invite code. The old one stops working."""
    group = await service.regenerate_invite_code(db, user.id, group_id)
    await db.commit()
    return await _build_group_response(db, group, user.id)


# ── Feed ──


@router.get("/{group_id}/scores", response_model=list[GroupScoreResponse])
async def group_scores_endpoint(
    group_id: int,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Scores shared to the group, newest first, with the viewer's thread state."""
    scores = await scores_for_group(db, user.id, group_id, limit=limit)
    return await build_group_score_responses(db, scores, group_id, user.id)


@router.get("/{group_id}/unread-count", response_model=UnreadCountResponse)
async def group_unread_count_endpoint(
    group_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Unread comments on each member's latest score in the group."""
    await service.get_group_or_404(db, group_id)
    if not await store.is_accepted_member(db, group_id, user.id):
        raise UnauthorizedError("You must be a member of the group to view unread comments")
    return UnreadCountResponse(unread_count=await group_unread_count(db, user.id, group_id))

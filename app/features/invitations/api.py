"""Invitations API endpoints"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_context
from app.api.errors import to_http_exception
from app.context import AppContext
from app.features.invitations.domain import build_invite_link, mask_token
from app.features.invitations.schemas import (
    AcceptInviteResponse,
    CreateInviteRequest,
    InviteResponse,
    RevokeInviteResponse,
)
from app.infra.store import StoreError
from app.middleware.auth import get_current_user
from app.models.invite import WorkspaceInvite
from app.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces/{workspace_id}/invites", tags=["invitations"])


@router.post("", response_model=InviteResponse, status_code=201)
async def create_invite(
    workspace_id: str,
    request: CreateInviteRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """
    Invite someone to the workspace by email.

    Only OWNER and ADMIN members may invite. The returned link opens the
    web app's accept flow.
    """
    try:
        await context.members.require_manager(workspace_id, user)
        invite = await context.invitations.create_invite(
            workspace_id, request.email, request.role, user.id
        )
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)

    link = build_invite_link(context.settings.invite_base_url, workspace_id, invite.token)
    return InviteResponse(invite=invite, link=link)


@router.get("/{token}", response_model=WorkspaceInvite)
async def get_invite(
    workspace_id: str,
    token: str,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Look up an invite by its token"""
    try:
        invite = await context.invitations.get_invite(workspace_id, token)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    if invite is None:
        raise HTTPException(status_code=404, detail="Invite not found")
    return invite


@router.delete("/{token}", response_model=RevokeInviteResponse)
async def revoke_invite(
    workspace_id: str,
    token: str,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Revoke a pending invite. Revoking twice is harmless."""
    try:
        await context.members.require_manager(workspace_id, user)
        await context.invitations.revoke_invite(workspace_id, token)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    return RevokeInviteResponse(success=True, message=f"Invite {mask_token(token)} revoked")


@router.post("/{token}/accept", response_model=AcceptInviteResponse)
async def accept_invite(
    workspace_id: str,
    token: str,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """
    Accept an invite as the caller.

    Raises:
        404: Invite or workspace not found
        403: Invite addressed to another email
        409: Invite already accepted or revoked
        410: Invite expired
    """
    try:
        member = await context.invitations.accept_invite(workspace_id, token, user)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    return AcceptInviteResponse(workspace_id=workspace_id, member=member)

"""Members API endpoints"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_context
from app.api.errors import to_http_exception
from app.context import AppContext
from app.features.members.schemas import (
    RemoveMemberResponse,
    TelegramChatIdRequest,
    TelegramChatIdResponse,
    UpdateMemberRoleRequest,
)
from app.infra.store import StoreError
from app.middleware.auth import get_current_user
from app.models.user import User
from app.models.workspace import WorkspaceMember

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces/{workspace_id}/members", tags=["members"])
profile_router = APIRouter(prefix="/api/users/me", tags=["members"])


@router.get("", response_model=List[User])
async def get_member_directory(
    workspace_id: str,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """
    Display-ready member list of a workspace.

    Members with a broken userId are left out; the caller is always listed
    exactly once.
    """
    try:
        acting = await context.members.require_member(workspace_id, user)
        current_user = user.model_copy(update={"role": acting.role})
        directory = await context.directory.get_directory(workspace_id, current_user)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    logger.info(f"Returning {len(directory)} members for workspace {workspace_id}")
    return directory


@router.delete("/{member_id}", response_model=RemoveMemberResponse)
async def remove_member(
    workspace_id: str,
    member_id: str,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Remove a member. The owner can never be removed."""
    try:
        acting = await context.members.require_member(workspace_id, user)
        await context.members.remove_member(workspace_id, member_id, acting)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    return RemoveMemberResponse(success=True, message=f"Member {member_id} removed")


@router.patch("/{member_id}", response_model=WorkspaceMember)
async def update_member_role(
    workspace_id: str,
    member_id: str,
    request: UpdateMemberRoleRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Change a member's role"""
    try:
        acting = await context.members.require_member(workspace_id, user)
        member = await context.members.update_member_role(workspace_id, member_id, request.role, acting)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    if member is None:
        raise HTTPException(status_code=404, detail=f"Member {member_id} not found")
    return member


@profile_router.put("/telegram-chat-id", response_model=TelegramChatIdResponse)
async def set_telegram_chat_id(
    request: TelegramChatIdRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Store the caller's Telegram chat id on their profile and member records"""
    try:
        updated = await context.members.sync_telegram_chat_id(user.id, request.chat_id, user.email)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    return TelegramChatIdResponse(updated_members=updated)

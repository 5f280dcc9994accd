"""Request and response schemas for the members API"""
from typing import Optional

from pydantic import BaseModel

from app.models.workspace import WorkspaceRole


class UpdateMemberRoleRequest(BaseModel):
    role: WorkspaceRole


class RemoveMemberResponse(BaseModel):
    success: bool
    message: str


class TelegramChatIdRequest(BaseModel):
    chat_id: Optional[str] = None


class TelegramChatIdResponse(BaseModel):
    updated_members: int

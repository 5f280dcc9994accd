"""Request and response schemas for the invitations API"""
from pydantic import BaseModel, EmailStr

from app.models.base import DocumentModel
from app.models.invite import WorkspaceInvite
from app.models.workspace import WorkspaceMember, WorkspaceRole


class CreateInviteRequest(BaseModel):
    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.MEMBER


class InviteResponse(DocumentModel):
    invite: WorkspaceInvite
    link: str


class AcceptInviteResponse(DocumentModel):
    workspace_id: str
    member: WorkspaceMember


class RevokeInviteResponse(BaseModel):
    success: bool
    message: str

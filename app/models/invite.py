"""Workspace invite domain model"""
from datetime import datetime
from enum import Enum
from typing import Optional

from app.utils.datetime_helper import to_canonical

from .base import DocumentModel
from .workspace import WorkspaceRole


class InviteStatus(str, Enum):
    """Invite lifecycle: PENDING -> ACCEPTED | REVOKED (both terminal)"""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REVOKED = "REVOKED"


class WorkspaceInvite(DocumentModel):
    """Invite document (workspaces/{workspaceId}/invites/{token}); id == token"""
    id: str
    token: str
    email: str
    role: WorkspaceRole
    workspace_id: str
    invited_by: str
    status: InviteStatus = InviteStatus.PENDING
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == InviteStatus.PENDING

    def is_expired(self, now: datetime) -> bool:
        return to_canonical(now) > to_canonical(self.expires_at)

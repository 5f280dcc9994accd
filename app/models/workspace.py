"""Workspace and workspace member domain models"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .base import DocumentModel


class WorkspaceRole(str, Enum):
    """Role of a member inside a workspace"""
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"
    GUEST = "GUEST"


class MemberStatus(str, Enum):
    """Workspace member status enum"""
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    REMOVED = "REMOVED"


class WorkspacePlan(str, Enum):
    """Workspace plan enum"""
    FREE = "FREE"
    PRO = "PRO"
    TEAM = "TEAM"


class Workspace(DocumentModel):
    """Workspace document (workspaces/{id})"""
    id: str
    name: str
    description: Optional[str] = ""
    created_at: Optional[datetime] = None
    owner_id: str
    plan: WorkspacePlan = WorkspacePlan.FREE


class WorkspaceMember(DocumentModel):
    """
    Member document (workspaces/{workspaceId}/members/{userId})

    user_id is left untyped: legacy records may carry a missing, empty or
    non-string value and must still load so they can be reported.
    """
    id: str
    user_id: Any = None
    email: str = ""
    role: WorkspaceRole = WorkspaceRole.MEMBER
    status: MemberStatus = MemberStatus.ACTIVE
    joined_at: Optional[datetime] = None
    invited_by: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    @property
    def has_valid_user_id(self) -> bool:
        return isinstance(self.user_id, str) and self.user_id.strip() != ""

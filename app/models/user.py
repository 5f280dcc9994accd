"""User profile domain model"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DocumentModel
from .workspace import WorkspaceRole


class User(DocumentModel):
    """
    Profile record (users/{id}); also used for the authenticated caller,
    where only id and email are guaranteed
    """
    id: str
    email: str = ""
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: WorkspaceRole = WorkspaceRole.MEMBER
    is_active: bool = True
    created_at: Optional[datetime] = None
    telegram_chat_id: Optional[str] = None
    push_subscription: Optional[Dict[str, Any]] = None

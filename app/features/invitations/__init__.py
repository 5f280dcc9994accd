"""Workspace invitations feature module"""

from app.features.invitations.domain import (
    INVITE_TTL,
    InvitationError,
    InviteExpiredError,
    InviteNotFoundError,
    InviteNotPendingError,
    InviteRecipientMismatchError,
    WorkspaceNotFoundError,
)
from app.features.invitations.service import InvitationService

__all__ = [
    "INVITE_TTL",
    "InvitationError",
    "InvitationService",
    "InviteExpiredError",
    "InviteNotFoundError",
    "InviteNotPendingError",
    "InviteRecipientMismatchError",
    "WorkspaceNotFoundError",
]

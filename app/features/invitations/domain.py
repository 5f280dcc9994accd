"""Domain rules and errors for workspace invitations"""
from datetime import timedelta
from urllib.parse import urlencode

# Fixed lifetime of every invite
INVITE_TTL = timedelta(days=7)


class InvitationError(ValueError):
    """An invite operation was refused; the message is safe to show end users"""

    code = "invitation-error"
    default_message = "Invitation could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InviteNotFoundError(InvitationError):
    code = "invite-not-found"
    default_message = "Invite not found"


class InviteNotPendingError(InvitationError):
    code = "invite-not-pending"
    default_message = "This invite has already been used or revoked"


class InviteExpiredError(InvitationError):
    code = "invite-expired"
    default_message = "This invite has expired"


class InviteRecipientMismatchError(InvitationError):
    code = "invite-recipient-mismatch"
    default_message = "This invite is intended for a different user"


class WorkspaceNotFoundError(InvitationError):
    code = "workspace-not-found"
    default_message = "Workspace not found"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def mask_token(token: str) -> str:
    """Loggable form of an invite token"""
    return f"{token[:4]}***" if token else "<empty>"


def build_invite_link(base_url: str, workspace_id: str, token: str) -> str:
    """Link the web app opens to accept an invite"""
    query = urlencode({"workspace": workspace_id, "invite": token})
    return f"{base_url.rstrip('/')}/?{query}"

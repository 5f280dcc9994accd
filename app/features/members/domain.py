"""Domain rules and errors for workspace membership changes"""
from app.models.workspace import WorkspaceRole

# Roles that may never remove other members
RESTRICTED_ROLES = frozenset({WorkspaceRole.MEMBER, WorkspaceRole.VIEWER})

# Roles allowed to manage invites and member roles
MANAGER_ROLES = frozenset({WorkspaceRole.OWNER, WorkspaceRole.ADMIN})


class MemberPermissionError(ValueError):
    """A membership change was refused; the message is safe to show end users"""

    code = "member-permission"
    default_message = "Membership change not allowed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class OwnerRemovalError(MemberPermissionError):
    code = "owner-removal"
    default_message = "Cannot remove the workspace owner"


class OwnerRoleChangeError(MemberPermissionError):
    code = "owner-role-change"
    default_message = "The workspace owner's role cannot be changed"


class InsufficientPrivilegesError(MemberPermissionError):
    code = "insufficient-privileges"
    default_message = "Insufficient privileges"

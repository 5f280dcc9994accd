"""Workspace members feature module"""

from app.features.members.directory import MemberDirectory, project_members
from app.features.members.domain import (
    InsufficientPrivilegesError,
    MemberPermissionError,
    OwnerRemovalError,
    OwnerRoleChangeError,
)
from app.features.members.service import MemberService

__all__ = [
    "InsufficientPrivilegesError",
    "MemberDirectory",
    "MemberPermissionError",
    "MemberService",
    "OwnerRemovalError",
    "OwnerRoleChangeError",
    "project_members",
]

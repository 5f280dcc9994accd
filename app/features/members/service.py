"""Business logic for member removal, role changes and profile sync"""
import logging
from typing import List, Optional

from app.infra.repositories import RepositoryFactory, partition_members
from app.infra.store import DELETE_FIELD, PermissionDeniedError
from app.models.user import User
from app.models.workspace import MemberStatus, WorkspaceMember, WorkspaceRole

from .domain import (
    MANAGER_ROLES,
    RESTRICTED_ROLES,
    InsufficientPrivilegesError,
    OwnerRemovalError,
    OwnerRoleChangeError,
)

logger = logging.getLogger(__name__)


class MemberService:
    """Membership changes made by one member on behalf of another"""

    def __init__(self, repositories: RepositoryFactory):
        self._repositories = repositories

    async def resolve_acting_member(self, workspace_id: str, user: User) -> Optional[WorkspaceMember]:
        """
        The caller's member record in a workspace

        A member record whose stored userId differs from the account id is
        matched by email; that record, with its stored userId, is returned.
        The workspace owner without a member record (legacy data) is treated
        as an OWNER member. Returns None for callers with no access.
        """
        member = await self._repositories.members.get_member(workspace_id, user.id)
        if member is not None:
            return member

        email = (user.email or "").lower()
        if email:
            valid, _ = partition_members(await self._repositories.members.list_members(workspace_id))
            member = next((m for m in valid if m.email.lower() == email), None)
            if member is not None:
                logger.warning(
                    f"User {user.id} matched member {member.user_id} in workspace {workspace_id} "
                    f"by email only; using the stored userId"
                )
                return member

        workspace = await self._repositories.workspaces.get_workspace(workspace_id)
        if workspace is not None and workspace.owner_id == user.id:
            return WorkspaceMember(
                id=user.id,
                user_id=user.id,
                email=user.email,
                role=WorkspaceRole.OWNER,
                status=MemberStatus.ACTIVE,
            )
        return None

    async def require_member(self, workspace_id: str, user: User) -> WorkspaceMember:
        """The caller's member record; raises InsufficientPrivilegesError without access"""
        member = await self.resolve_acting_member(workspace_id, user)
        if member is None or member.status != MemberStatus.ACTIVE:
            logger.warning(f"User {user.id} has no access to workspace {workspace_id}")
            raise InsufficientPrivilegesError("You are not a member of this workspace")
        return member

    async def require_manager(self, workspace_id: str, user: User) -> WorkspaceMember:
        """Like `require_member`, restricted to OWNER and ADMIN members"""
        member = await self.require_member(workspace_id, user)
        if member.role not in MANAGER_ROLES:
            raise InsufficientPrivilegesError()
        return member

    async def remove_member(self, workspace_id: str, member_id: str, acting_member: WorkspaceMember) -> None:
        """
        Delete a member record

        Raises:
            OwnerRemovalError: If the target is the workspace owner
            InsufficientPrivilegesError: If the acting member is a MEMBER or VIEWER
            PermissionDeniedError: If the store refuses the delete
        """
        logger.info(
            f"Removing member {member_id} from workspace {workspace_id} "
            f"(acting user {acting_member.user_id}, role {acting_member.role.value})"
        )
        member = await self._repositories.members.get_member(workspace_id, member_id)
        if member is None:
            logger.warning(f"Member {member_id} not found in workspace {workspace_id}; nothing to remove")
            return

        if member.role == WorkspaceRole.OWNER:
            raise OwnerRemovalError()
        if acting_member.role in RESTRICTED_ROLES:
            raise InsufficientPrivilegesError()

        try:
            await self._repositories.members.delete_member(workspace_id, member_id)
        except PermissionDeniedError as e:
            logger.error(f"Store denied removing member {member_id} from workspace {workspace_id}: {e.message}")
            raise PermissionDeniedError(
                f"Permission denied removing member: {e.message}. "
                f"Check the store's access rules for workspace members.",
                e.path,
            ) from e

        logger.info(f"Member {member_id} removed from workspace {workspace_id}")

    async def update_member_role(
        self,
        workspace_id: str,
        member_id: str,
        role: WorkspaceRole,
        acting_member: WorkspaceMember,
    ) -> Optional[WorkspaceMember]:
        """
        Change a member's role

        Returns None when the member does not exist.

        Raises:
            OwnerRoleChangeError: If the target is the owner or the new role is OWNER
            InsufficientPrivilegesError: If the acting member is a MEMBER or VIEWER
        """
        role = WorkspaceRole(role)
        member = await self._repositories.members.get_member(workspace_id, member_id)
        if member is None:
            logger.warning(f"Member {member_id} not found in workspace {workspace_id}; role unchanged")
            return None

        if member.role == WorkspaceRole.OWNER:
            raise OwnerRoleChangeError()
        if role == WorkspaceRole.OWNER:
            raise OwnerRoleChangeError("The OWNER role cannot be granted")
        if acting_member.role in RESTRICTED_ROLES:
            raise InsufficientPrivilegesError()

        await self._repositories.members.update_member(workspace_id, member_id, {"role": role.value})
        logger.info(f"Member {member_id} in workspace {workspace_id}: role {member.role.value} -> {role.value}")
        return member.model_copy(update={"role": role})

    async def sync_telegram_chat_id(self, user_id: str, chat_id: Optional[str], email: Optional[str] = None) -> int:
        """
        Copy a user's Telegram chat id to their profile and every member record

        An empty chat id clears the field. Returns the number of member
        records updated.
        """
        chat_id = (chat_id or "").strip()
        value = chat_id if chat_id else DELETE_FIELD

        await self._repositories.users.merge_user(user_id, {"telegramChatId": value})

        paths: List[str] = await self._repositories.members.find_member_paths(user_id, email)
        for path in paths:
            await self._repositories.members.update_member_at(path, {"telegramChatId": value})

        logger.info(
            f"Telegram chat id {'set' if chat_id else 'cleared'} for user {user_id} "
            f"on {len(paths)} member record(s)"
        )
        return len(paths)

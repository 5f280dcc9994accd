"""Business logic for workspace invitations"""
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

from app.infra.repositories import RepositoryFactory
from app.infra.repositories.paths import invite_path, member_path, workspace_path
from app.infra.store import SERVER_TIMESTAMP, StoreError, Transaction, Unsubscribe
from app.models.invite import InviteStatus, WorkspaceInvite
from app.models.user import User
from app.models.workspace import MemberStatus, WorkspaceMember, WorkspaceRole
from app.utils.datetime_helper import canonical_iso, now_canonical, to_canonical

from .domain import (
    INVITE_TTL,
    InvitationError,
    InviteExpiredError,
    InviteNotFoundError,
    InviteNotPendingError,
    InviteRecipientMismatchError,
    WorkspaceNotFoundError,
    mask_token,
    normalize_email,
)

logger = logging.getLogger(__name__)


class InvitationService:
    """Creates, revokes and accepts workspace invites"""

    def __init__(self, repositories: RepositoryFactory, clock: Callable[[], datetime] = now_canonical):
        self._repositories = repositories
        self._clock = clock

    async def create_invite(
        self,
        workspace_id: str,
        email: str,
        role: WorkspaceRole,
        invited_by: str,
    ) -> WorkspaceInvite:
        """
        Create a PENDING invite valid for INVITE_TTL

        The random token is also the invite's document id. Several pending
        invites for the same email may coexist.

        Raises:
            ValueError: If the email is empty or the role is OWNER
        """
        email = normalize_email(email)
        if not email:
            raise ValueError("Invite email is required")
        role = WorkspaceRole(role)
        if role == WorkspaceRole.OWNER:
            raise ValueError("Cannot invite a member with the OWNER role")

        token = self._repositories.invites.new_token()
        now = to_canonical(self._clock())
        invite = WorkspaceInvite(
            id=token,
            token=token,
            email=email,
            role=role,
            workspace_id=workspace_id,
            invited_by=invited_by,
            status=InviteStatus.PENDING,
            created_at=now,
            expires_at=now + INVITE_TTL,
        )
        await self._repositories.invites.save_invite(invite)
        logger.info(
            f"Invite {mask_token(token)} created for workspace {workspace_id} "
            f"(role {role.value}) by {invited_by}"
        )
        return invite

    async def get_invite(self, workspace_id: str, token: str) -> Optional[WorkspaceInvite]:
        return await self._repositories.invites.get_invite(workspace_id, token)

    async def list_invites(self, workspace_id: str) -> List[WorkspaceInvite]:
        return await self._repositories.invites.list_invites(workspace_id)

    def subscribe_to_invites(
        self,
        workspace_id: str,
        callback: Callable[[List[WorkspaceInvite]], Any],
    ) -> Unsubscribe:
        return self._repositories.invites.subscribe_to_invites(workspace_id, callback)

    async def revoke_invite(self, workspace_id: str, token: str) -> None:
        """Revoke a PENDING invite; absent or already finished invites are left alone"""
        path = invite_path(workspace_id, token)

        async def revoke(transaction: Transaction) -> bool:
            snapshot = await transaction.get(path)
            if not snapshot.exists or snapshot.get("status") != InviteStatus.PENDING.value:
                return False
            transaction.update(path, {
                "status": InviteStatus.REVOKED.value,
                "revokedAt": SERVER_TIMESTAMP,
            })
            return True

        revoked = await self._repositories.store.run_transaction(revoke)
        if revoked:
            logger.info(f"Invite {mask_token(token)} revoked in workspace {workspace_id}")
        else:
            logger.info(f"Invite {mask_token(token)} in workspace {workspace_id} is not pending; nothing to revoke")

    async def accept_invite(self, workspace_id: str, token: str, user: User) -> WorkspaceMember:
        """
        Accept an invite and make the user an ACTIVE member, atomically

        Every read happens before any write; a failed check aborts the
        transaction without side effects.

        Returns:
            The member record as written

        Raises:
            InvitationError: If the invite cannot be accepted by this user
            StoreError: If the store rejects the transaction
        """
        i_path = invite_path(workspace_id, token)
        m_path = member_path(workspace_id, user.id)
        w_path = workspace_path(workspace_id)
        now = to_canonical(self._clock())

        async def accept(transaction: Transaction) -> WorkspaceMember:
            invite_snapshot = await transaction.get(i_path)
            if not invite_snapshot.exists:
                raise InviteNotFoundError()
            invite = WorkspaceInvite.model_validate({**invite_snapshot.to_dict(), "id": invite_snapshot.id})

            if not invite.is_pending:
                raise InviteNotPendingError()
            if invite.is_expired(now):
                raise InviteExpiredError()
            if normalize_email(invite.email) != normalize_email(user.email):
                raise InviteRecipientMismatchError()

            member_snapshot = await transaction.get(m_path)
            workspace_snapshot = await transaction.get(w_path)
            if not workspace_snapshot.exists:
                raise WorkspaceNotFoundError()

            if member_snapshot.exists:
                existing = WorkspaceMember.model_validate(
                    {**member_snapshot.to_dict(), "id": member_snapshot.id}
                )
                member = existing.model_copy(update={
                    "role": invite.role,
                    "status": MemberStatus.ACTIVE,
                    "joined_at": now,
                })
                transaction.update(m_path, {
                    "role": invite.role.value,
                    "status": MemberStatus.ACTIVE.value,
                    "joinedAt": canonical_iso(now),
                })
            else:
                member = WorkspaceMember(
                    id=user.id,
                    user_id=user.id,
                    email=user.email,
                    role=invite.role,
                    status=MemberStatus.ACTIVE,
                    joined_at=now,
                    invited_by=invite.invited_by,
                )
                transaction.set(m_path, member.to_document())

            transaction.update(i_path, {
                "status": InviteStatus.ACCEPTED.value,
                "acceptedAt": SERVER_TIMESTAMP,
            })
            return member

        try:
            member = await self._repositories.store.run_transaction(accept)
        except InvitationError as e:
            logger.warning(
                f"Invite {mask_token(token)} in workspace {workspace_id} refused for user {user.id}: {e.code}"
            )
            raise
        except StoreError as e:
            logger.error(
                f"Accepting invite {mask_token(token)} in workspace {workspace_id} "
                f"for user {user.id} failed: {e.code} {e.message}"
            )
            raise

        logger.info(f"User {user.id} joined workspace {workspace_id} as {member.role.value}")
        return member

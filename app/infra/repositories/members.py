"""Workspace member repository"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.infra.store import DocumentSnapshot, DocumentStore, Query, Unsubscribe, parent_document_id
from app.models.workspace import MemberStatus, WorkspaceMember

from .base import BaseRepository
from .paths import MEMBERS, WORKSPACES, member_path, members_collection

logger = logging.getLogger(__name__)


def partition_members(
    members: List[WorkspaceMember],
) -> Tuple[List[WorkspaceMember], List[WorkspaceMember]]:
    """Split members into (valid, invalid) by their stored userId"""
    valid = [m for m in members if m.has_valid_user_id]
    invalid = [m for m in members if not m.has_valid_user_id]
    return valid, invalid


def log_invalid_members(workspace_id: str, invalid: List[WorkspaceMember], source: str) -> None:
    if not invalid:
        return
    details = [{"id": m.id, "email": m.email, "userId": m.user_id} for m in invalid]
    logger.warning(
        f"[{source}] Workspace {workspace_id} has {len(invalid)} member(s) "
        f"with invalid userId: {details}"
    )


def _workspace_ids(snapshots: List[DocumentSnapshot]) -> List[str]:
    """Owning workspace ids of member records, resolved from their paths"""
    workspace_ids = []
    for snapshot in snapshots:
        workspace_id = parent_document_id(snapshot.path, WORKSPACES)
        if workspace_id is None:
            logger.warning(f"Skipping member record with unexpected path: {snapshot.path}")
            continue
        if workspace_id not in workspace_ids:
            workspace_ids.append(workspace_id)
    return workspace_ids


class MemberRepository(BaseRepository[WorkspaceMember]):
    """Repository for workspace member operations"""

    def __init__(self, store: DocumentStore):
        super().__init__(store, WorkspaceMember)

    async def get_member(self, workspace_id: str, member_id: str) -> Optional[WorkspaceMember]:
        return await self._find(member_path(workspace_id, member_id))

    async def list_members(self, workspace_id: str) -> List[WorkspaceMember]:
        """All member records of a workspace, including malformed ones"""
        return await self._find_all(Query.collection(members_collection(workspace_id)))

    def subscribe_to_members(
        self,
        workspace_id: str,
        callback: Callable[[List[WorkspaceMember]], Any],
    ) -> Unsubscribe:
        """Live list of a workspace's members with a valid userId"""

        def on_members(members: List[WorkspaceMember]):
            valid, invalid = partition_members(members)
            log_invalid_members(workspace_id, invalid, "subscribe_to_members")
            with_chat = sum(1 for m in valid if m.telegram_chat_id)
            logger.info(
                f"Members updated for workspace {workspace_id}: "
                f"{len(valid)} valid, {with_chat} with chat id"
            )
            return callback(valid)

        return self._subscribe(
            Query.collection(members_collection(workspace_id)),
            on_members,
            {"workspace_id": workspace_id},
        )

    def active_memberships_query(self, user_id: str) -> Query:
        """Active member records of a user across every workspace"""
        return (
            Query.collection_group(MEMBERS)
            .where("userId", "==", user_id)
            .where("status", "==", MemberStatus.ACTIVE.value)
        )

    def subscribe_to_memberships(
        self,
        user_id: str,
        callback: Callable[[List[str]], Any],
    ) -> Unsubscribe:
        """
        Live list of ids of the workspaces where the user is an ACTIVE member

        The workspace id comes from each record's storage path
        (workspaces/{workspaceId}/members/{memberId}); records stored
        anywhere else are logged and skipped.
        """

        def on_snapshot(snapshots: List[DocumentSnapshot]):
            return callback(_workspace_ids(snapshots))

        return self._store.subscribe(
            self.active_memberships_query(user_id),
            on_snapshot,
            self._subscription_error_handler({"query": "active_memberships", "user_id": user_id}),
        )

    async def find_active_workspace_ids(self, user_id: str) -> List[str]:
        return _workspace_ids(await self._store.query(self.active_memberships_query(user_id)))

    async def find_member_paths(self, user_id: str, email: Optional[str] = None) -> List[str]:
        """
        Paths of every member record belonging to a user

        Falls back to matching by email when no record carries the user's id.
        """
        snapshots = await self._store.query(Query.collection_group(MEMBERS).where("userId", "==", user_id))
        if not snapshots and email:
            snapshots = await self._store.query(
                Query.collection_group(MEMBERS).where("email", "==", email.lower())
            )
            if snapshots:
                logger.warning(
                    f"Member records for user {user_id} found by email only ({len(snapshots)}); "
                    f"stored userId differs from the account id"
                )
        return [s.path for s in snapshots]

    async def update_member(self, workspace_id: str, member_id: str, data: Dict[str, Any]) -> None:
        await self._store.update(member_path(workspace_id, member_id), data)

    async def delete_member(self, workspace_id: str, member_id: str) -> None:
        await self._store.delete(member_path(workspace_id, member_id))

    async def update_member_at(self, path: str, data: Dict[str, Any]) -> None:
        """Update a member record located by a path from `find_member_paths`"""
        await self._store.update(path, data)

"""Workspace invite repository"""
from typing import Any, Callable, List, Optional

from app.infra.store import DocumentStore, Query, Unsubscribe
from app.models.invite import WorkspaceInvite

from .base import BaseRepository
from .paths import invite_path, invites_collection


class InviteRepository(BaseRepository[WorkspaceInvite]):
    """Repository for workspace invite documents"""

    def __init__(self, store: DocumentStore):
        super().__init__(store, WorkspaceInvite)

    def new_token(self) -> str:
        """Fresh random id, used as both document id and bearer token"""
        return self._store.new_id()

    async def get_invite(self, workspace_id: str, token: str) -> Optional[WorkspaceInvite]:
        return await self._find(invite_path(workspace_id, token))

    async def save_invite(self, invite: WorkspaceInvite) -> None:
        await self._store.set(invite_path(invite.workspace_id, invite.token), invite.to_document())

    async def list_invites(self, workspace_id: str) -> List[WorkspaceInvite]:
        return await self._find_all(Query.collection(invites_collection(workspace_id)))

    def subscribe_to_invites(
        self,
        workspace_id: str,
        callback: Callable[[List[WorkspaceInvite]], Any],
    ) -> Unsubscribe:
        return self._subscribe(
            Query.collection(invites_collection(workspace_id)),
            callback,
            {"workspace_id": workspace_id},
        )

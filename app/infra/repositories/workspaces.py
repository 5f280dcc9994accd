"""Workspace repository"""
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

from app.infra.store import DocumentStore, Query, StoreError, Transaction, Unsubscribe
from app.models.user import User
from app.models.workspace import (
    MemberStatus,
    Workspace,
    WorkspaceMember,
    WorkspacePlan,
    WorkspaceRole,
)
from app.utils.datetime_helper import now_canonical

from .base import BaseRepository
from .paths import WORKSPACES, member_path, workspace_path

logger = logging.getLogger(__name__)


class WorkspaceRepository(BaseRepository[Workspace]):
    """Repository for workspace operations"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = now_canonical):
        super().__init__(store, Workspace)
        self._clock = clock

    async def get_workspace(self, workspace_id: str) -> Optional[Workspace]:
        """Find a workspace by ID"""
        return await self._find(workspace_path(workspace_id))

    def owned_by_query(self, user_id: str) -> Query:
        """Workspaces whose ownerId is the given user"""
        return Query.collection(WORKSPACES).where("ownerId", "==", user_id)

    async def find_owned_by(self, user_id: str) -> List[Workspace]:
        return await self._find_all(self.owned_by_query(user_id))

    def subscribe_owned_by(
        self,
        user_id: str,
        callback: Callable[[List[Workspace]], Any],
    ) -> Unsubscribe:
        """Live list of the workspaces a user owns"""
        return self._subscribe(
            self.owned_by_query(user_id),
            callback,
            {"query": "owned_workspaces", "user_id": user_id},
        )

    async def create_workspace(self, name: str, owner: User, description: str = "") -> Workspace:
        """
        Create a workspace together with its OWNER member

        Both documents are written in one transaction, so the owner's member
        record exists as soon as the workspace does.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Workspace name is required")

        workspace_id = self._store.new_id()
        now = self._clock()

        workspace = Workspace(
            id=workspace_id,
            name=name,
            description=description,
            created_at=now,
            owner_id=owner.id,
            plan=WorkspacePlan.FREE,
        )
        member = WorkspaceMember(
            id=owner.id,
            user_id=owner.id,
            email=owner.email,
            role=WorkspaceRole.OWNER,
            status=MemberStatus.ACTIVE,
            joined_at=now,
            invited_by=owner.id,
        )

        logger.info(f"Creating workspace {workspace_id} '{name}' for owner {owner.id}")

        async def create(transaction: Transaction) -> None:
            transaction.set(workspace_path(workspace_id), workspace.to_document())
            transaction.set(member_path(workspace_id, owner.id), member.to_document())

        try:
            await self._store.run_transaction(create)
        except StoreError as e:
            logger.error(
                f"Failed to create workspace {workspace_id} for owner {owner.id}: "
                f"{e.code} {e.message}"
            )
            raise

        logger.info(f"Workspace {workspace_id} created")
        return workspace

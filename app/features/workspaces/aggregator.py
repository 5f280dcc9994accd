"""
Live list of every workspace a user can access

Two subscriptions feed one view:
- workspaces the user owns (ownerId == user id)
- workspaces where the user has an ACTIVE member record

Both write into a map keyed by workspace id. Neither subscription removes
entries, so a snapshot from one never hides workspaces found by the other.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from app.infra.repositories import RepositoryFactory
from app.infra.store import StoreError, Unsubscribe, maybe_await
from app.models.user import User
from app.models.workspace import Workspace

logger = logging.getLogger(__name__)

WorkspacesCallback = Callable[[List[Workspace]], Any]


class _MembershipView:
    """State of one aggregator subscription"""

    def __init__(self, repositories: RepositoryFactory, user: User, callback: WorkspacesCallback):
        self._repositories = repositories
        self._user = user
        self._callback = callback
        self._workspaces: Dict[str, Workspace] = {}
        self._member_workspace_ids: Set[str] = set()
        self._handles: List[Unsubscribe] = []
        self._closed = False

    def start(self) -> Unsubscribe:
        self._handles.append(
            self._repositories.workspaces.subscribe_owned_by(self._user.id, self._on_owned)
        )
        self._handles.append(
            self._repositories.members.subscribe_to_memberships(self._user.id, self._on_memberships)
        )
        return self.close

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for unsubscribe in self._handles:
            unsubscribe()
        logger.debug(f"Workspace subscriptions closed for user {self._user.id}")

    async def _on_owned(self, workspaces: List[Workspace]) -> None:
        for workspace in workspaces:
            self._workspaces[workspace.id] = workspace
        logger.debug(f"User {self._user.id} owns {len(workspaces)} workspace(s)")
        await self._publish()

    async def _on_memberships(self, workspace_ids: List[str]) -> None:
        self._member_workspace_ids.update(workspace_ids)
        logger.debug(f"User {self._user.id} is an active member of {len(workspace_ids)} workspace(s)")
        await self._publish()

    async def _fetch(self, workspace_id: str) -> Optional[Workspace]:
        try:
            workspace = await self._repositories.workspaces.get_workspace(workspace_id)
        except (StoreError, ValidationError) as e:
            logger.error(f"Failed to load workspace {workspace_id} for user {self._user.id}: {e}")
            return None
        if workspace is None:
            logger.warning(
                f"Workspace {workspace_id} referenced by a membership of user {self._user.id} does not exist"
            )
        return workspace

    async def _publish(self) -> None:
        missing = sorted(wid for wid in self._member_workspace_ids if wid not in self._workspaces)
        if missing:
            fetched = await asyncio.gather(*(self._fetch(wid) for wid in missing))
            for workspace in fetched:
                if workspace is not None:
                    self._workspaces.setdefault(workspace.id, workspace)

        if self._closed:
            return
        await maybe_await(self._callback(list(self._workspaces.values())))


class WorkspaceMembershipAggregator:
    """Builds live workspace lists for users"""

    def __init__(self, repositories: RepositoryFactory):
        self._repositories = repositories
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, user: User, callback: WorkspacesCallback) -> Unsubscribe:
        """
        Deliver the user's accessible workspaces now and on every change

        Returns a teardown that closes both underlying subscriptions. A user
        without an email gets an immediate empty list and no subscriptions.
        """
        if not user.email:
            logger.info(f"User {user.id} has no email; no workspaces to subscribe to")
            result = callback([])
            if inspect.isawaitable(result):
                task = asyncio.get_running_loop().create_task(maybe_await(result))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
            return lambda: None

        logger.info(f"Subscribing to workspaces of user {user.id}")
        return _MembershipView(self._repositories, user, callback).start()

    async def list_workspaces(self, user: User) -> List[Workspace]:
        """One-shot version of `subscribe`: the user's accessible workspaces right now"""
        if not user.email:
            return []

        workspaces = {w.id: w for w in await self._repositories.workspaces.find_owned_by(user.id)}
        for workspace_id in await self._repositories.members.find_active_workspace_ids(user.id):
            if workspace_id in workspaces:
                continue
            workspace = await self._repositories.workspaces.get_workspace(workspace_id)
            if workspace is None:
                logger.warning(f"Workspace {workspace_id} referenced by a membership of user {user.id} does not exist")
                continue
            workspaces[workspace_id] = workspace
        return list(workspaces.values())

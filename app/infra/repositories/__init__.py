"""Repository factory and exports"""
from datetime import datetime
from typing import Callable

from app.infra.store import DocumentStore
from app.utils.datetime_helper import now_canonical

from .invites import InviteRepository
from .members import MemberRepository, partition_members
from .projects import ProjectRepository
from .tasks import TaskRepository
from .users import UserRepository
from .workspaces import WorkspaceRepository


class RepositoryFactory:
    """Factory for creating repository instances over one document store"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = now_canonical):
        self._store = store
        self._clock = clock
        self._workspaces: WorkspaceRepository = None
        self._members: MemberRepository = None
        self._invites: InviteRepository = None
        self._users: UserRepository = None
        self._tasks: TaskRepository = None
        self._projects: ProjectRepository = None

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def workspaces(self) -> WorkspaceRepository:
        """Get workspaces repository"""
        if self._workspaces is None:
            self._workspaces = WorkspaceRepository(self._store, self._clock)
        return self._workspaces

    @property
    def members(self) -> MemberRepository:
        """Get workspace members repository"""
        if self._members is None:
            self._members = MemberRepository(self._store)
        return self._members

    @property
    def invites(self) -> InviteRepository:
        """Get workspace invites repository"""
        if self._invites is None:
            self._invites = InviteRepository(self._store)
        return self._invites

    @property
    def users(self) -> UserRepository:
        """Get user profiles repository"""
        if self._users is None:
            self._users = UserRepository(self._store)
        return self._users

    @property
    def tasks(self) -> TaskRepository:
        """Get task repository"""
        if self._tasks is None:
            self._tasks = TaskRepository(self._store)
        return self._tasks

    @property
    def projects(self) -> ProjectRepository:
        """Get project repository"""
        if self._projects is None:
            self._projects = ProjectRepository(self._store)
        return self._projects


__all__ = [
    'RepositoryFactory',
    'InviteRepository',
    'MemberRepository',
    'ProjectRepository',
    'TaskRepository',
    'UserRepository',
    'WorkspaceRepository',
    'partition_members',
]

"""Domain models for the application"""
from .base import DocumentModel
from .invite import InviteStatus, WorkspaceInvite
from .task import Project, ProjectStatus, Task, TaskPriority, TaskStatus
from .user import User
from .workspace import MemberStatus, Workspace, WorkspaceMember, WorkspacePlan, WorkspaceRole

__all__ = [
    'DocumentModel',
    'InviteStatus', 'WorkspaceInvite',
    'Project', 'ProjectStatus', 'Task', 'TaskPriority', 'TaskStatus',
    'User',
    'MemberStatus', 'Workspace', 'WorkspaceMember', 'WorkspacePlan', 'WorkspaceRole',
]

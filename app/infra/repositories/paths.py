"""Document paths of every stored entity"""
from app.infra.store import join_path

WORKSPACES = "workspaces"
MEMBERS = "members"
INVITES = "invites"
USERS = "users"
TASKS = "tasks"
PROJECTS = "projects"


def workspace_path(workspace_id: str) -> str:
    return join_path(WORKSPACES, workspace_id)


def members_collection(workspace_id: str) -> str:
    return join_path(WORKSPACES, workspace_id, MEMBERS)


def member_path(workspace_id: str, member_id: str) -> str:
    return join_path(WORKSPACES, workspace_id, MEMBERS, member_id)


def invites_collection(workspace_id: str) -> str:
    return join_path(WORKSPACES, workspace_id, INVITES)


def invite_path(workspace_id: str, token: str) -> str:
    return join_path(WORKSPACES, workspace_id, INVITES, token)


def user_path(user_id: str) -> str:
    return join_path(USERS, user_id)


def task_path(task_id: str) -> str:
    return join_path(TASKS, task_id)


def project_path(project_id: str) -> str:
    return join_path(PROJECTS, project_id)

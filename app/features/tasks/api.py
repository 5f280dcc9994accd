"""Guarded task and project update endpoints"""
import html
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from app.api.deps import get_context
from app.api.errors import to_http_exception
from app.context import AppContext
from app.features.tasks.schemas import GuardedUpdateRequest, GuardedUpdateResponse
from app.infra.repositories.mutation_guard import ASSIGNEE_SET_FIELD, LEGACY_ASSIGNEE_FIELD
from app.infra.store import DELETE_FIELD, StoreError, is_sentinel
from app.middleware.auth import get_current_user
from app.models.task import Task
from app.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])
projects_router = APIRouter(prefix="/api/projects", tags=["projects"])

# Never changed through a partial update
PROTECTED_FIELDS = frozenset({"id", "workspaceId", "createdAt"})


def _build_updates(request: GuardedUpdateRequest) -> Dict[str, Any]:
    protected = PROTECTED_FIELDS.intersection(request.updates) | PROTECTED_FIELDS.intersection(request.clear)
    if protected:
        raise ValueError(f"Fields cannot be changed: {', '.join(sorted(protected))}")
    updates = dict(request.updates)
    for field in request.clear:
        updates[field] = DELETE_FIELD
    if not updates:
        raise ValueError("Nothing to update")
    return updates


def _serializable(written: Dict[str, Any]) -> Dict[str, Any]:
    return {key: (None if is_sentinel(value) else value) for key, value in written.items()}


async def _notify_assignees(context: AppContext, task_id: str, user_id: str) -> None:
    try:
        task = await context.repositories.tasks.get_task(task_id)
        if task is None:
            return
        message = f"<b>Task updated</b>\n{html.escape(task.title)}"
        await context.notifications.notify_assignees(task, message, creator_id=user_id)
    except StoreError as e:
        logger.error(f"Could not notify assignees of task {task_id}: {e.code} {e.message}")


@router.patch("/{task_id}", response_model=GuardedUpdateResponse)
async def update_task(
    task_id: str,
    request: GuardedUpdateRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """
    Apply a partial task update.

    The update is sanitized before it is written: nulls are dropped,
    assigneeIds keeps the legacy assigneeId in step, and updatedAt is set
    by the server. Assignees are notified when they change.
    """
    try:
        task: Task = await context.repositories.tasks.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        await context.members.require_member(task.workspace_id, user)
        written = await context.repositories.tasks.update_task(task_id, _build_updates(request))
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)

    assignees_changed = ASSIGNEE_SET_FIELD in written or LEGACY_ASSIGNEE_FIELD in written
    if assignees_changed and context.notifications is not None:
        background_tasks.add_task(_notify_assignees, context, task_id, user.id)

    return GuardedUpdateResponse(id=task_id, written=_serializable(written))


@projects_router.patch("/{project_id}", response_model=GuardedUpdateResponse)
async def update_project(
    project_id: str,
    request: GuardedUpdateRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Apply a sanitized partial project update"""
    try:
        project = await context.repositories.projects.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
        await context.members.require_member(project.workspace_id, user)
        written = await context.repositories.projects.update_project(project_id, _build_updates(request))
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)

    return GuardedUpdateResponse(id=project_id, written=_serializable(written))

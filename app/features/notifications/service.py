"""Task assignee notifications"""
import logging
from typing import List, Optional

from app.infra.repositories import RepositoryFactory
from app.models.task import Task

from .dispatcher import DeliveryResult, NotificationDispatcher
from .recipients import resolve_task_recipients

logger = logging.getLogger(__name__)


class TaskNotificationService:
    """Sends a message to the assignees of a task"""

    def __init__(self, repositories: RepositoryFactory, dispatcher: NotificationDispatcher):
        self._repositories = repositories
        self._dispatcher = dispatcher

    async def notify_assignees(
        self,
        task: Task,
        message: str,
        creator_id: Optional[str] = None,
    ) -> List[DeliveryResult]:
        members = await self._repositories.members.list_members(task.workspace_id)
        recipients = resolve_task_recipients(task, members, creator_id)
        if not recipients:
            logger.info(f"Task {task.id}: no assignee can be notified")
            return []
        return await self._dispatcher.dispatch(recipients, message)

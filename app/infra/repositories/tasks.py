"""Task repository"""
import logging
from typing import Any, Dict, Mapping, Optional

from app.infra.store import DocumentStore, StoreError
from app.models.task import Task
from app.utils.datetime_helper import canonical_iso

from .base import BaseRepository
from .mutation_guard import drop_absent, sanitize_update
from .paths import TASKS, task_path

logger = logging.getLogger(__name__)


class TaskRepository(BaseRepository[Task]):
    """Repository for task operations"""

    def __init__(self, store: DocumentStore):
        super().__init__(store, Task)

    async def get_task(self, task_id: str) -> Optional[Task]:
        return await self._find(task_path(task_id))

    async def create_task(self, data: Mapping[str, Any]) -> Task:
        """Create a task; absent and empty-string fields are not written"""
        if not data.get("workspaceId"):
            raise ValueError("Task requires workspaceId")
        if not data.get("title"):
            raise ValueError("Task requires a title")

        document = drop_absent(data)
        document.pop("id", None)
        now = canonical_iso()
        document["createdAt"] = now
        document["updatedAt"] = now

        snapshot = await self._store.add(TASKS, document)
        logger.info(f"Task {snapshot.id} created in workspace {data['workspaceId']}")
        return self._to_model(snapshot)

    async def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply a sanitized partial update and return what was written"""
        sanitized = sanitize_update(updates)
        try:
            await self._store.update(task_path(task_id), sanitized)
        except StoreError as e:
            logger.error(
                f"Failed to update task {task_id} ({e.code}); fields: {sorted(sanitized)}"
            )
            raise
        return sanitized

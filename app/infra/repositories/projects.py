"""Project repository"""
import logging
from typing import Any, Dict, Mapping, Optional

from app.infra.store import DocumentStore, StoreError
from app.models.task import Project
from app.utils.datetime_helper import canonical_iso

from .base import BaseRepository
from .mutation_guard import drop_absent, sanitize_update
from .paths import PROJECTS, project_path

logger = logging.getLogger(__name__)

REQUIRED_PROJECT_FIELDS = ("workspaceId", "name", "ownerId")


class ProjectRepository(BaseRepository[Project]):
    """Repository for project operations"""

    def __init__(self, store: DocumentStore):
        super().__init__(store, Project)

    async def get_project(self, project_id: str) -> Optional[Project]:
        return await self._find(project_path(project_id))

    async def create_project(self, data: Mapping[str, Any]) -> Project:
        missing = [field for field in REQUIRED_PROJECT_FIELDS if not data.get(field)]
        if missing:
            raise ValueError(f"Project requires {', '.join(missing)}")

        document = drop_absent(data)
        document.pop("id", None)
        now = canonical_iso()
        document["createdAt"] = now
        document["updatedAt"] = now

        snapshot = await self._store.add(PROJECTS, document)
        logger.info(f"Project {snapshot.id} created in workspace {data['workspaceId']}")
        return self._to_model(snapshot)

    async def update_project(self, project_id: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
        sanitized = sanitize_update(updates)
        try:
            await self._store.update(project_path(project_id), sanitized)
        except StoreError as e:
            logger.error(
                f"Failed to update project {project_id} ({e.code}); fields: {sorted(sanitized)}"
            )
            raise
        return sanitized

"""User profile repository"""
from typing import Any, Dict, Optional

from app.infra.store import DocumentStore
from app.models.user import User

from .base import BaseRepository
from .paths import user_path


class UserRepository(BaseRepository[User]):
    """Profile store: point lookups and profile edits"""

    def __init__(self, store: DocumentStore):
        super().__init__(store, User)

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self._find(user_path(user_id))

    async def save_user(self, user: User) -> None:
        """Create or merge a profile document"""
        await self._store.set(user_path(user.id), user.to_document(), merge=True)

    async def merge_user(self, user_id: str, data: Dict[str, Any]) -> None:
        """Merge fields into a profile, creating it if needed"""
        await self._store.set(user_path(user_id), data, merge=True)

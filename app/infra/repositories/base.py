"""Base repository with common document operations"""
import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from app.infra.store import DocumentSnapshot, DocumentStore, Query, Unsubscribe
from app.models.base import DocumentModel

T = TypeVar('T', bound=DocumentModel)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Base repository providing common document operations.
    Hides DocumentStore implementation details from the rest of the application.
    """

    def __init__(self, store: DocumentStore, model_class: Type[T]):
        self._store = store
        self._model_class = model_class

    @property
    def store(self) -> DocumentStore:
        return self._store

    def _to_model(self, snapshot: DocumentSnapshot) -> T:
        """Convert a stored document to a domain model (the path id wins)"""
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return self._model_class.model_validate(data)

    def _to_models(self, snapshots: List[DocumentSnapshot]) -> List[T]:
        """Convert snapshots to models, skipping documents that fail validation"""
        models = []
        for snapshot in snapshots:
            try:
                models.append(self._to_model(snapshot))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed {self._model_class.__name__} at {snapshot.path}: "
                    f"{e.error_count()} validation errors"
                )
        return models

    async def _find(self, path: str) -> Optional[T]:
        """Find a single document by path"""
        snapshot = await self._store.get(path)
        if not snapshot.exists:
            return None
        return self._to_model(snapshot)

    async def _find_all(self, query: Query) -> List[T]:
        return self._to_models(await self._store.query(query))

    def _subscription_error_handler(self, context: Dict[str, Any]) -> Callable[[Exception], None]:
        name = self._model_class.__name__

        def on_error(error: Exception) -> None:
            code = getattr(error, "code", type(error).__name__)
            logger.error(f"{name} subscription failed {context}: {code} {error}")
            if code == "permission-denied":
                logger.error(
                    f"{name} subscription was denied {context}; "
                    f"check the store's access rules for this query"
                )

        return on_error

    def _subscribe(
        self,
        query: Query,
        callback: Callable[[List[T]], Any],
        context: Dict[str, Any],
    ) -> Unsubscribe:
        """Live list of models matching `query`; errors are logged with context"""

        def on_snapshot(snapshots: List[DocumentSnapshot]):
            return callback(self._to_models(snapshots))

        return self._store.subscribe(query, on_snapshot, self._subscription_error_handler(context))

"""In-process document store used for tests, demos and local development"""
import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from app.utils.datetime_helper import now_canonical

from .base import (
    DocumentSnapshot,
    DocumentStore,
    ErrorCallback,
    Query,
    SnapshotCallback,
    SubscriptionListener,
    Unsubscribe,
    Write,
    apply_write,
)
from .errors import TransactionConflictError

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """
    Dictionary-backed store with the same contract as the managed database

    Commits never await, so each commit is atomic with respect to the event
    loop. Listeners are notified from tasks scheduled on the running loop;
    `drain()` waits until every pending delivery has finished.
    """

    def __init__(self, clock: Callable[[], datetime] = now_canonical):
        super().__init__(clock)
        self._documents: Dict[str, Tuple[Dict[str, Any], int]] = {}
        self._listeners: Dict[int, SubscriptionListener] = {}
        self._next_listener_id = 0
        self._pending: Set[asyncio.Task] = set()
        self._query_errors: Dict[str, Exception] = {}

    # ---- adapter hooks --------------------------------------------------

    async def _read(self, path: str) -> DocumentSnapshot:
        stored = self._documents.get(path)
        if stored is None:
            return DocumentSnapshot(path)
        data, version = stored
        return DocumentSnapshot(path, copy.deepcopy(data), version)

    async def _run_query(self, query: Query) -> List[DocumentSnapshot]:
        error = self._query_errors.get(query.collection_id)
        if error is not None:
            raise error
        candidates = [
            DocumentSnapshot(path, copy.deepcopy(data), version)
            for path, (data, version) in self._documents.items()
            if query.matches_path(path)
        ]
        return query.apply(candidates)

    async def _commit(self, reads: Dict[str, int], writes: List[Write]) -> None:
        for path, version in reads.items():
            stored = self._documents.get(path)
            current_version = stored[1] if stored else 0
            if current_version != version:
                raise TransactionConflictError(f"Document changed during transaction: {path}", path)

        timestamp = self._timestamp()
        staged: Dict[str, Optional[Dict[str, Any]]] = {}
        for write in writes:
            if write.path in staged:
                current = staged[write.path]
            else:
                stored = self._documents.get(write.path)
                current = stored[0] if stored else None
            # Raises before anything below mutates state
            staged[write.path] = apply_write(current, write, timestamp)

        for path, data in staged.items():
            stored = self._documents.get(path)
            version = stored[1] if stored else 0
            if data is None:
                self._documents.pop(path, None)
            else:
                self._documents[path] = (data, version + 1)

        if staged:
            self._notify(staged.keys())

    # ---- subscriptions --------------------------------------------------

    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        listener = SubscriptionListener(query, on_snapshot, on_error)
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = listener
        self._schedule(listener)

        def unsubscribe() -> None:
            listener.active = False
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def _notify(self, paths) -> None:
        changed = list(paths)
        for listener in list(self._listeners.values()):
            if any(listener.query.matches_path(path) for path in changed):
                self._schedule(listener)

    def _schedule(self, listener: SubscriptionListener) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(listener))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for all scheduled snapshot deliveries (and those they trigger)"""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def set_query_error(self, collection_id: str, error: Optional[Exception]) -> None:
        """Make queries over `collection_id` fail (None clears the failure)"""
        if error is None:
            self._query_errors.pop(collection_id, None)
        else:
            self._query_errors[collection_id] = error

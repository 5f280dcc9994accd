"""
Document store port

Paths, queries, snapshots, write sentinels and the optimistic transaction
runner shared by every store adapter. Adapters only provide point reads,
query execution, an atomic commit and live subscriptions.
"""
import copy
import inspect
import logging
import secrets
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

from app.utils.datetime_helper import canonical_iso, now_canonical, to_canonical

from .errors import (
    InvalidArgumentError,
    NotFoundError,
    ReadAfterWriteError,
    TransactionConflictError,
)

logger = logging.getLogger(__name__)

AUTO_ID_ALPHABET = string.ascii_letters + string.digits
AUTO_ID_LENGTH = 20
DEFAULT_TRANSACTION_ATTEMPTS = 5


class FieldSentinel:
    """Write-time instruction placed in a payload instead of a value"""

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


# Removes the field from the stored document (update / merge only)
DELETE_FIELD = FieldSentinel("DELETE_FIELD")
# Replaced with the store clock when the write commits
SERVER_TIMESTAMP = FieldSentinel("SERVER_TIMESTAMP")


def is_sentinel(value: Any) -> bool:
    return isinstance(value, FieldSentinel)


SnapshotCallback = Callable[[List["DocumentSnapshot"]], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


async def maybe_await(result: Any) -> Any:
    """Await the result of a callback that may or may not be a coroutine"""
    if inspect.isawaitable(result):
        return await result
    return result


# ============================================================================
# PATHS
# ============================================================================

def split_path(path: str) -> List[str]:
    if not isinstance(path, str) or not path.strip("/"):
        raise InvalidArgumentError(f"Invalid path: {path!r}", path)
    segments = path.strip("/").split("/")
    if any(not segment for segment in segments):
        raise InvalidArgumentError(f"Invalid path: {path!r}", path)
    return segments


def join_path(*segments: str) -> str:
    for segment in segments:
        if not isinstance(segment, str) or not segment or "/" in segment:
            raise InvalidArgumentError(f"Invalid path segment: {segment!r}")
    return "/".join(segments)


def check_document_path(path: str) -> str:
    if len(split_path(path)) % 2 != 0:
        raise InvalidArgumentError(f"Not a document path: {path}", path)
    return path.strip("/")


def check_collection_path(path: str) -> str:
    if len(split_path(path)) % 2 != 1:
        raise InvalidArgumentError(f"Not a collection path: {path}", path)
    return path.strip("/")


def parent_document_id(path: str, collection_id: str) -> Optional[str]:
    """
    Id of the document stored directly under `collection_id` in a nested path

    parent_document_id("workspaces/w1/members/u1", "workspaces") -> "w1"
    Returns None when the path does not contain that collection.
    """
    segments = path.split("/") if isinstance(path, str) else []
    try:
        index = segments.index(collection_id)
    except ValueError:
        return None
    if index % 2 != 0 or index + 1 >= len(segments):
        return None
    return segments[index + 1] or None


# ============================================================================
# SNAPSHOTS
# ============================================================================

_MISSING = object()


def get_field(data: Optional[Dict[str, Any]], field_path: str) -> Any:
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of a stored document (data is None if absent)"""

    path: str
    data: Optional[Dict[str, Any]] = None
    version: int = 0

    @property
    def exists(self) -> bool:
        return self.data is not None

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def collection_path(self) -> str:
        return self.path.rsplit("/", 1)[0]

    @property
    def collection_id(self) -> str:
        return self.collection_path.rsplit("/", 1)[-1]

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.data) if self.data is not None else None

    def get(self, field_path: str, default: Any = None) -> Any:
        value = get_field(self.data, field_path)
        return default if value is _MISSING else value


# ============================================================================
# QUERIES
# ============================================================================

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda actual, expected: actual == expected,
    "!=": lambda actual, expected: actual != expected,
    "in": lambda actual, expected: actual in expected,
    "array_contains": lambda actual, expected: isinstance(actual, list) and expected in actual,
}


@dataclass(frozen=True)
class FieldFilter:
    field_path: str
    op: str
    value: Any

    def matches(self, data: Optional[Dict[str, Any]]) -> bool:
        actual = get_field(data, self.field_path)
        if actual is _MISSING:
            return False
        return _OPERATORS[self.op](actual, self.value)


def _sort_key(value: Any) -> Tuple[int, Any]:
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    return (2, str(value))


@dataclass(frozen=True)
class Query:
    """
    Immutable query over one collection, or over every collection with the
    same id (collection group) when `all_descendants` is set
    """

    path: str
    all_descendants: bool = False
    filters: Tuple[FieldFilter, ...] = ()
    order: Tuple[Tuple[str, bool], ...] = ()
    max_results: Optional[int] = None

    @classmethod
    def collection(cls, path: str) -> "Query":
        return cls(path=check_collection_path(path))

    @classmethod
    def collection_group(cls, collection_id: str) -> "Query":
        if not collection_id or "/" in collection_id:
            raise InvalidArgumentError(f"Invalid collection id: {collection_id!r}")
        return cls(path=collection_id, all_descendants=True)

    @property
    def collection_id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        if op not in _OPERATORS:
            raise InvalidArgumentError(f"Unsupported operator: {op}")
        if value is None:
            raise InvalidArgumentError(f"Unsupported filter value None for {field_path}")
        if op == "in":
            if not isinstance(value, (list, tuple, set)):
                raise InvalidArgumentError(f"'in' filter on {field_path} requires a list")
            value = tuple(value)
        return replace(self, filters=self.filters + (FieldFilter(field_path, op, value),))

    def order_by(self, field_path: str, descending: bool = False) -> "Query":
        return replace(self, order=self.order + ((field_path, descending),))

    def limit(self, count: int) -> "Query":
        return replace(self, max_results=count)

    def matches_path(self, document_path: str) -> bool:
        collection = document_path.rsplit("/", 1)[0]
        if self.all_descendants:
            return collection.rsplit("/", 1)[-1] == self.path
        return collection == self.path

    def matches(self, snapshot: DocumentSnapshot) -> bool:
        if not snapshot.exists or not self.matches_path(snapshot.path):
            return False
        return all(f.matches(snapshot.data) for f in self.filters)

    def apply(self, snapshots: Iterable[DocumentSnapshot]) -> List[DocumentSnapshot]:
        """Filter, order and limit a candidate set of snapshots"""
        results = sorted((s for s in snapshots if self.matches(s)), key=lambda s: s.path)

        for field_path, _ in self.order:
            results = [s for s in results if get_field(s.data, field_path) is not _MISSING]
        for field_path, descending in reversed(self.order):
            results.sort(key=lambda s: _sort_key(get_field(s.data, field_path)), reverse=descending)

        if self.max_results is not None:
            results = results[:self.max_results]
        return results


# ============================================================================
# WRITES
# ============================================================================

@dataclass(frozen=True)
class Write:
    op: str  # "set" | "merge" | "update" | "delete"
    path: str
    data: Optional[Dict[str, Any]] = None


def _to_storable(value: Any, location: str, path: str, allow_delete: bool) -> Any:
    if value is None:
        raise InvalidArgumentError(
            f"Unsupported field value: None (found in field {location})", path
        )
    if value is DELETE_FIELD:
        if not allow_delete:
            raise InvalidArgumentError(
                f"DELETE_FIELD is only allowed in update or merge writes (field {location})", path
            )
        return value
    if value is SERVER_TIMESTAMP:
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return canonical_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str) or not key:
                raise InvalidArgumentError(f"Invalid field name {key!r} in {location}", path)
            result[key] = _to_storable(item, f"{location}.{key}" if location else key, path, allow_delete)
        return result
    if isinstance(value, (list, tuple)):
        items = []
        for index, item in enumerate(value):
            if is_sentinel(item):
                raise InvalidArgumentError(f"Sentinels are not allowed inside arrays ({location})", path)
            items.append(_to_storable(item, f"{location}[{index}]", path, allow_delete=False))
        return items
    return value


def _resolve_timestamps(value: Any, timestamp: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return timestamp
    if isinstance(value, dict):
        return {key: _resolve_timestamps(item, timestamp) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_timestamps(item, timestamp) for item in value]
    return value


def _deep_merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in changes.items():
        if value is DELETE_FIELD:
            base.pop(key, None)
        elif isinstance(value, dict):
            existing = base.get(key)
            base[key] = _deep_merge(existing if isinstance(existing, dict) else {}, value)
        else:
            base[key] = value
    return base


def _set_field_path(document: Dict[str, Any], parts: List[str], value: Any) -> None:
    target = document
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            if value is DELETE_FIELD:
                return
            child = {}
            target[part] = child
        target = child

    if value is DELETE_FIELD:
        target.pop(parts[-1], None)
    elif isinstance(value, dict):
        target[parts[-1]] = _deep_merge({}, value)
    else:
        target[parts[-1]] = value


def apply_write(current: Optional[Dict[str, Any]], write: Write, timestamp: str) -> Optional[Dict[str, Any]]:
    """Compute a document's new contents (None = deleted) after one write"""
    if write.op == "delete":
        return None

    payload = _resolve_timestamps(write.data, timestamp)

    if write.op == "set":
        return copy.deepcopy(payload)

    if write.op == "merge":
        return _deep_merge(copy.deepcopy(current) if current else {}, payload)

    if write.op == "update":
        if current is None:
            raise NotFoundError(f"No document to update: {write.path}", write.path)
        document = copy.deepcopy(current)
        for key, value in payload.items():
            _set_field_path(document, key.split("."), value)
        return document

    raise InvalidArgumentError(f"Unknown write operation: {write.op}", write.path)


# ============================================================================
# TRANSACTIONS
# ============================================================================

class Transaction:
    """
    Buffered multi-document write set

    Every read must happen before the first write. Writes are applied
    atomically on commit, and only if none of the documents read changed.
    """

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._reads: Dict[str, int] = {}
        self._writes: List[Write] = []

    async def get(self, path: str) -> DocumentSnapshot:
        if self._writes:
            raise ReadAfterWriteError(
                "Transactions require all reads to be executed before all writes", path
            )
        snapshot = await self._store.get(path)
        self._reads[snapshot.path] = snapshot.version
        return snapshot

    def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._writes.append(self._store._prepare_write("merge" if merge else "set", path, data))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self._writes.append(self._store._prepare_write("update", path, data))

    def delete(self, path: str) -> None:
        self._writes.append(self._store._prepare_write("delete", path, None))


# ============================================================================
# STORE
# ============================================================================

@dataclass
class SubscriptionListener:
    query: Query
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback] = None
    active: bool = True


class DocumentStore(ABC):
    """
    Live-query capable document database

    Adapters implement `_read`, `_run_query`, `_commit` and `subscribe`.
    """

    def __init__(self, clock: Callable[[], datetime] = now_canonical):
        self._clock = clock

    # ---- ids and paths --------------------------------------------------

    def new_id(self) -> str:
        return "".join(secrets.choice(AUTO_ID_ALPHABET) for _ in range(AUTO_ID_LENGTH))

    def document_path(self, collection_path: str, document_id: Optional[str] = None) -> str:
        check_collection_path(collection_path)
        return join_path(*split_path(collection_path), document_id or self.new_id())

    # ---- point operations -----------------------------------------------

    async def get(self, path: str) -> DocumentSnapshot:
        return await self._read(check_document_path(path))

    async def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self._commit_with_retry([self._prepare_write("merge" if merge else "set", path, data)])

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        await self._commit_with_retry([self._prepare_write("update", path, data)])

    async def delete(self, path: str) -> None:
        await self._commit_with_retry([self._prepare_write("delete", path, None)])

    async def add(self, collection_path: str, data: Dict[str, Any]) -> DocumentSnapshot:
        path = self.document_path(collection_path)
        await self.set(path, data)
        return await self.get(path)

    async def query(self, query: Query) -> List[DocumentSnapshot]:
        return await self._run_query(query)

    # ---- transactions ---------------------------------------------------

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[Any]],
        max_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
    ) -> Any:
        """
        Run `fn` inside a transaction and commit its buffered writes

        Exceptions raised by `fn` abort the transaction without any effect
        and are not retried. A commit that loses an optimistic race re-runs
        `fn` from scratch, up to `max_attempts` times.
        """
        attempt = 0
        while True:
            attempt += 1
            transaction = Transaction(self)
            result = await fn(transaction)
            try:
                await self._commit(dict(transaction._reads), list(transaction._writes))
                return result
            except TransactionConflictError:
                if attempt >= max_attempts:
                    logger.warning(f"Transaction gave up after {attempt} attempts")
                    raise
                logger.info(f"Transaction conflict, retrying (attempt {attempt + 1}/{max_attempts})")

    async def _commit_with_retry(self, writes: List[Write]) -> None:
        attempt = 0
        while True:
            attempt += 1
            try:
                await self._commit({}, writes)
                return
            except TransactionConflictError:
                if attempt >= DEFAULT_TRANSACTION_ATTEMPTS:
                    raise

    def _prepare_write(self, op: str, path: str, data: Optional[Dict[str, Any]]) -> Write:
        path = check_document_path(path)
        if op == "delete":
            return Write(op, path)
        if not isinstance(data, dict):
            raise InvalidArgumentError(f"Document data must be a mapping, got {type(data).__name__}", path)
        payload = _to_storable(data, "", path, allow_delete=op in ("merge", "update"))
        return Write(op, path, payload)

    def _timestamp(self) -> str:
        return canonical_iso(to_canonical(self._clock()))

    # ---- subscriptions --------------------------------------------------

    async def _deliver(self, listener: SubscriptionListener) -> None:
        """Run a listener's query and hand the full result set to it"""
        if not listener.active:
            return
        try:
            snapshots = await self._run_query(listener.query)
        except Exception as e:
            if listener.on_error is not None:
                listener.on_error(e)
            else:
                logger.error(f"Subscription query on '{listener.query.path}' failed: {e}")
            return

        if not listener.active:
            return
        try:
            await maybe_await(listener.on_snapshot(snapshots))
        except Exception:
            logger.exception(f"Snapshot listener for '{listener.query.path}' raised")

    @abstractmethod
    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """Deliver the full result set now and after every relevant change"""

    @abstractmethod
    async def _read(self, path: str) -> DocumentSnapshot:
        ...

    @abstractmethod
    async def _run_query(self, query: Query) -> List[DocumentSnapshot]:
        ...

    @abstractmethod
    async def _commit(self, reads: Dict[str, int], writes: List[Write]) -> None:
        """Atomically verify read versions and apply writes"""

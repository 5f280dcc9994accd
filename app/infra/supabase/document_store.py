"""
Document store backed by a single Supabase (Postgres) table

Layout (see supabase/migrations/0001_documents.sql):
    documents(path PK, collection_path, collection_id, data jsonb, version)

Commits go through the `commit_documents` RPC, which locks every touched
row, checks the expected versions and applies all writes in one database
transaction. Live subscriptions listen to Realtime postgres changes on the
table and re-run the query on every change.
"""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from supabase import AsyncClient  # type: ignore

from app.infra.store.base import (
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
from app.infra.store.errors import (
    PermissionDeniedError,
    StoreError,
    TransactionConflictError,
    UnavailableError,
)
from app.utils.datetime_helper import now_canonical

logger = logging.getLogger(__name__)

DOCUMENT_COLUMNS = "path, data, version"


def _json_column(field_path: str, as_text: bool) -> str:
    """PostgREST JSON path for a dotted field, e.g. data->owner->>id"""
    parts = field_path.split(".")
    column = "data"
    for part in parts[:-1]:
        column += f"->{part}"
    return column + (f"->>{parts[-1]}" if as_text else f"->{parts[-1]}")


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SupabaseDocumentStore(DocumentStore):
    """DocumentStore adapter over the Supabase `documents` table"""

    def __init__(
        self,
        client: AsyncClient,
        table_name: str = "documents",
        clock: Callable[[], datetime] = now_canonical,
    ):
        super().__init__(clock)
        self._client = client
        self._table_name = table_name
        self._pending: Set[asyncio.Task] = set()

    async def _execute(self, request, context: str):
        try:
            return await request.execute()
        except Exception as e:
            code = getattr(e, "code", None)
            message = getattr(e, "message", None) or str(e)
            logger.error(f"Supabase request failed ({context}): code={code} {message}")
            if code in ("42501", "401", "403"):
                raise PermissionDeniedError(message) from e
            if code is None:
                raise UnavailableError(message) from e
            raise StoreError(message) from e

    # ---- adapter hooks --------------------------------------------------

    async def _read(self, path: str) -> DocumentSnapshot:
        response = await self._execute(
            self._client.table(self._table_name).select(DOCUMENT_COLUMNS).eq("path", path),
            f"read {path}",
        )
        if not response.data:
            return DocumentSnapshot(path)
        row = response.data[0]
        return DocumentSnapshot(path, row["data"], row["version"])

    async def _run_query(self, query: Query) -> List[DocumentSnapshot]:
        request = self._client.table(self._table_name).select(DOCUMENT_COLUMNS)
        if query.all_descendants:
            request = request.eq("collection_id", query.path)
        else:
            request = request.eq("collection_path", query.path)

        for f in query.filters:
            if f.op == "==":
                request = request.eq(_json_column(f.field_path, True), _as_text(f.value))
            elif f.op == "!=":
                request = request.neq(_json_column(f.field_path, True), _as_text(f.value))
            elif f.op == "in":
                request = request.in_(_json_column(f.field_path, True), [_as_text(v) for v in f.value])
            elif f.op == "array_contains":
                request = request.contains(_json_column(f.field_path, False), json.dumps([f.value]))

        response = await self._execute(request, f"query {query.path}")
        snapshots = [
            DocumentSnapshot(row["path"], row["data"], row["version"])
            for row in response.data or []
        ]
        # Text comparison on the server is coarser than typed comparison
        return query.apply(snapshots)

    async def _commit(self, reads: Dict[str, int], writes: List[Write]) -> None:
        if not writes:
            return

        preconditions = dict(reads)
        current: Dict[str, Optional[Dict[str, Any]]] = {}
        for write in writes:
            if write.path in current or write.op in ("set", "delete"):
                continue
            snapshot = await self._read(write.path)
            current[write.path] = snapshot.data
            preconditions.setdefault(write.path, snapshot.version)

        timestamp = self._timestamp()
        staged: Dict[str, Optional[Dict[str, Any]]] = {}
        for write in writes:
            base = staged[write.path] if write.path in staged else current.get(write.path)
            staged[write.path] = apply_write(base, write, timestamp)

        payload = []
        for path, data in staged.items():
            collection_path = path.rsplit("/", 1)[0]
            if data is None:
                payload.append({"op": "delete", "path": path})
            else:
                payload.append({
                    "op": "upsert",
                    "path": path,
                    "collection_path": collection_path,
                    "collection_id": collection_path.rsplit("/", 1)[-1],
                    "data": data,
                })

        response = await self._execute(
            self._client.rpc(
                "commit_documents",
                {
                    "p_preconditions": [{"path": p, "version": v} for p, v in preconditions.items()],
                    "p_writes": payload,
                },
            ),
            f"commit {len(payload)} writes",
        )
        if response.data is False:
            raise TransactionConflictError("Documents changed during transaction")

    # ---- subscriptions --------------------------------------------------

    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        loop = asyncio.get_running_loop()
        listener = SubscriptionListener(query, on_snapshot, on_error)
        channels = []

        def on_change(payload: Dict[str, Any]) -> None:
            if not listener.active:
                return
            path = _changed_path(payload)
            if path is None or query.matches_path(path):
                self._schedule(loop, self._deliver(listener))

        async def start() -> None:
            try:
                channel = self._client.channel(f"{self._table_name}:{self.new_id()}")
                channel.on_postgres_changes(
                    "*", schema="public", table=self._table_name, callback=on_change
                )
                await channel.subscribe()
            except Exception as e:
                if on_error is not None:
                    on_error(e)
                else:
                    logger.error(f"Realtime subscription on '{query.path}' failed: {e}")
                return
            channels.append(channel)
            if not listener.active:
                await self._client.remove_channel(channel)
                return
            await self._deliver(listener)

        self._schedule(loop, start())

        def unsubscribe() -> None:
            if not listener.active:
                return
            listener.active = False
            for channel in channels:
                self._schedule(loop, self._client.remove_channel(channel))

        return unsubscribe

    def _schedule(self, loop: asyncio.AbstractEventLoop, coro: Awaitable) -> None:
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Realtime task failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait for pending subscription, delivery and teardown tasks"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _changed_path(payload: Dict[str, Any]) -> Optional[str]:
    data = payload.get("data", payload) if isinstance(payload, dict) else {}
    for key in ("record", "old_record"):
        record = data.get(key) if isinstance(data, dict) else None
        if isinstance(record, dict) and record.get("path"):
            return record["path"]
    return None

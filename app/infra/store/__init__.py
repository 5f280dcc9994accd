"""Document store port and adapters"""
from .base import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    DocumentStore,
    Query,
    Transaction,
    Unsubscribe,
    is_sentinel,
    join_path,
    maybe_await,
    parent_document_id,
)
from .errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ReadAfterWriteError,
    StoreError,
    TransactionConflictError,
    UnavailableError,
)
from .memory import InMemoryDocumentStore

__all__ = [
    'DELETE_FIELD',
    'SERVER_TIMESTAMP',
    'DocumentSnapshot',
    'DocumentStore',
    'InMemoryDocumentStore',
    'Query',
    'Transaction',
    'Unsubscribe',
    'is_sentinel',
    'join_path',
    'maybe_await',
    'parent_document_id',
    'InvalidArgumentError',
    'NotFoundError',
    'PermissionDeniedError',
    'ReadAfterWriteError',
    'StoreError',
    'TransactionConflictError',
    'UnavailableError',
]

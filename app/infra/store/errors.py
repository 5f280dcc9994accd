"""Document store errors"""


class StoreError(Exception):
    """Base class for failures raised by a document store"""

    code = "unknown"

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.message = message
        self.path = path


class NotFoundError(StoreError):
    """Update of a document that does not exist"""

    code = "not-found"


class InvalidArgumentError(StoreError):
    """Malformed path, query or payload (e.g. a None value)"""

    code = "invalid-argument"


class PermissionDeniedError(StoreError):
    """The backing database refused the operation"""

    code = "permission-denied"


class ReadAfterWriteError(StoreError):
    """A transaction attempted a read after buffering a write"""

    code = "failed-precondition"


class TransactionConflictError(StoreError):
    """Documents read by a transaction changed before it could commit"""

    code = "aborted"


class UnavailableError(StoreError):
    """Transient transport failure talking to the backing database"""

    code = "unavailable"

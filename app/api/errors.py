"""Mapping of domain and store errors to HTTP responses"""
import logging

from fastapi import HTTPException

from app.features.invitations.domain import (
    InviteExpiredError,
    InviteNotFoundError,
    InviteNotPendingError,
    InviteRecipientMismatchError,
    WorkspaceNotFoundError,
)
from app.features.members.domain import MemberPermissionError
from app.infra.store import (
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    TransactionConflictError,
    UnavailableError,
)

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception) -> HTTPException:
    if isinstance(error, (InviteNotFoundError, WorkspaceNotFoundError, NotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (InviteRecipientMismatchError, MemberPermissionError, PermissionDeniedError)):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, InviteNotPendingError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, InviteExpiredError):
        return HTTPException(status_code=410, detail=str(error))
    if isinstance(error, TransactionConflictError):
        return HTTPException(status_code=409, detail="The data changed concurrently, please retry")
    if isinstance(error, UnavailableError):
        return HTTPException(status_code=503, detail="Document store unavailable")
    if isinstance(error, StoreError):
        logger.error(f"Store error {error.code}: {error.message}")
        return HTTPException(status_code=500, detail=f"Store error: {error.code}")
    if isinstance(error, ValueError):
        return HTTPException(status_code=400, detail=str(error))
    logger.error(f"Unexpected error: {error}", exc_info=error)
    return HTTPException(status_code=500, detail="Internal server error")

"""Workspaces API endpoints"""
import logging
from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_context
from app.api.errors import to_http_exception
from app.context import AppContext
from app.features.workspaces.schemas import CreateWorkspaceRequest
from app.infra.store import StoreError
from app.middleware.auth import get_current_user
from app.models.user import User
from app.models.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


@router.post("", response_model=Workspace, status_code=201)
async def create_workspace(
    request: CreateWorkspaceRequest,
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Create a workspace owned by the caller"""
    try:
        return await context.repositories.workspaces.create_workspace(
            request.name, user, request.description
        )
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)


@router.get("", response_model=List[Workspace])
async def list_workspaces(
    user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Workspaces the caller owns or is an active member of"""
    try:
        workspaces = await context.workspaces.list_workspaces(user)
    except (ValueError, StoreError) as e:
        raise to_http_exception(e)
    logger.info(f"Returning {len(workspaces)} workspaces for user {user.id}")
    return workspaces

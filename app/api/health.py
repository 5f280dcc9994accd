"""Health check endpoints"""

from fastapi import APIRouter, Depends

from app.api.deps import get_context
from app.context import AppContext

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check(context: AppContext = Depends(get_context)):
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "team-planner-backend",
        "store": context.settings.store_backend,
        "notifications": context.notifications is not None,
    }

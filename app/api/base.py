from fastapi import APIRouter

from app.api import health
from app.features.invitations.api import router as invitations_router
from app.features.members.api import profile_router
from app.features.members.api import router as members_router
from app.features.tasks.api import projects_router
from app.features.tasks.api import router as tasks_router
from app.features.workspaces.api import router as workspaces_router

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(health.router)
api_router.include_router(workspaces_router)
api_router.include_router(invitations_router)
api_router.include_router(members_router)
api_router.include_router(profile_router)
api_router.include_router(tasks_router)
api_router.include_router(projects_router)

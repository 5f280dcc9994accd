import logging

from app.config import Settings

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=Settings.from_env().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from typing import Optional  # noqa: E402

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from app.api.base import api_router  # noqa: E402
from app.api.deps import lifespan  # noqa: E402
from app.context import AppContext  # noqa: E402


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the API application

    With a prebuilt context (tests, embedding) the startup lifespan is
    skipped and the given context is used as is.
    """
    app = FastAPI(
        title="Team Planner Backend API",
        description="Workspaces, invitations, member directory and guarded task updates",
        version="1.0.0",
        lifespan=None if context is not None else lifespan,
    )
    if context is not None:
        app.state.context = context

    settings = context.settings if context is not None else Settings.from_env()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include all API routes
    app.include_router(api_router)

    @app.get("/")
    def read_root():
        return {
            "message": "Team Planner Backend API",
            "docs": "/docs",
            "version": "1.0.0"
        }

    return app


app = create_app()

"""Dependency injection and application lifespan"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request

from app.config import Settings
from app.context import AppContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the application context on startup and release it on shutdown"""
    context = await AppContext.create(Settings.from_env())
    app.state.context = context
    try:
        yield
    finally:
        await context.close()
        logger.info("Application context closed")


def get_context(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return context

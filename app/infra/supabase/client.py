"""Supabase client construction"""
import logging

from supabase import AsyncClient, acreate_client  # type: ignore

from app.config import Settings

logger = logging.getLogger(__name__)


async def create_supabase_client(settings: Settings) -> AsyncClient:
    """
    Create the async Supabase client for the configured project

    Built once at startup and handed to the document store; there is no
    module-level client.
    """
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    logger.info(f"Connecting to Supabase project at {settings.supabase_url}")
    return await acreate_client(settings.supabase_url, settings.supabase_service_role_key)

"""
Application context: every long-lived component, built once at startup

Components receive what they need from here instead of reaching for
module-level globals.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import httpx

from app.config import Settings
from app.features.invitations.service import InvitationService
from app.features.members.directory import MemberDirectory
from app.features.members.service import MemberService
from app.features.notifications import (
    NotificationChannel,
    NotificationDispatcher,
    TaskNotificationService,
    TelegramChannel,
)
from app.features.workspaces.aggregator import WorkspaceMembershipAggregator
from app.infra.repositories import RepositoryFactory
from app.infra.store import DocumentStore, InMemoryDocumentStore
from app.infra.supabase import SupabaseDocumentStore, create_supabase_client
from app.utils.datetime_helper import now_canonical

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    store: DocumentStore
    repositories: RepositoryFactory
    workspaces: WorkspaceMembershipAggregator
    invitations: InvitationService
    directory: MemberDirectory
    members: MemberService
    notifications: Optional[TaskNotificationService] = None
    http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_store(
        cls,
        settings: Settings,
        store: DocumentStore,
        channel: Optional[NotificationChannel] = None,
        clock: Callable[[], datetime] = now_canonical,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "AppContext":
        repositories = RepositoryFactory(store, clock)
        notifications = None
        if channel is not None:
            notifications = TaskNotificationService(repositories, NotificationDispatcher(channel))
        return cls(
            settings=settings,
            store=store,
            repositories=repositories,
            workspaces=WorkspaceMembershipAggregator(repositories),
            invitations=InvitationService(repositories, clock),
            directory=MemberDirectory(repositories),
            members=MemberService(repositories),
            notifications=notifications,
            http_client=http_client,
        )

    @classmethod
    async def create(cls, settings: Settings) -> "AppContext":
        """Build the context for the configured store backend"""
        if settings.store_backend == "supabase":
            client = await create_supabase_client(settings)
            store = SupabaseDocumentStore(client, settings.documents_table)
        elif settings.store_backend == "memory":
            logger.warning("Using the in-memory document store; data is lost on restart")
            store = InMemoryDocumentStore()
        else:
            raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")

        http_client = None
        channel = None
        if settings.telegram_bot_token:
            http_client = httpx.AsyncClient()
            channel = TelegramChannel(settings.telegram_bot_token, client=http_client)
        else:
            logger.info("TELEGRAM_BOT_TOKEN not set; task notifications are disabled")

        logger.info(f"Application context ready (store backend: {settings.store_backend})")
        return cls.from_store(settings, store, channel=channel, http_client=http_client)

    async def close(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()

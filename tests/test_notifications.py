"""Tests for task notification recipients, channels and dispatch."""
import json
import logging

import httpx
import pytest

from app.features.notifications import (
    NotificationDeliveryError,
    NotificationDispatcher,
    TaskNotificationService,
    TelegramChannel,
    resolve_task_recipients,
)
from app.infra.repositories import RepositoryFactory
from app.infra.store import InMemoryDocumentStore
from app.models.task import Task
from app.models.workspace import WorkspaceMember
from tests.helpers import RecordingChannel, seed_member


def task(**kwargs) -> Task:
    return Task(id="t1", title="Ship it", workspace_id="w1", **kwargs)


MEMBERS = [
    WorkspaceMember(id="u1", user_id="u1", email="a@x.com", telegram_chat_id="111"),
    WorkspaceMember(id="u2", user_id="u2", email="b@x.com", telegram_chat_id="222"),
    WorkspaceMember(id="u3", user_id="u3", email="c@x.com"),
    WorkspaceMember(id="bad", user_id="", email="bad@x.com", telegram_chat_id="999"),
]


class TestResolveTaskRecipients:
    """Tests for resolve_task_recipients."""

    def test_assignee_ids_take_priority(self) -> None:
        """assigneeIds wins over the legacy assigneeId."""
        recipients = resolve_task_recipients(task(assignee_ids=["u2", "u1"], assignee_id="u3"), MEMBERS)
        assert recipients == ["222", "111"]

    def test_legacy_assignee(self) -> None:
        """Without assigneeIds the single assigneeId is used."""
        assert resolve_task_recipients(task(assignee_id="u1"), MEMBERS) == ["111"]

    def test_email_assignee(self) -> None:
        """Assignees stored as emails are matched case-insensitively."""
        assert resolve_task_recipients(task(assignee_ids=["B@X.com"]), MEMBERS) == ["222"]

    def test_skips_unreachable_assignees(self, caplog) -> None:
        """Non-members, members without chat ids and invalid records are skipped."""
        with caplog.at_level(logging.WARNING):
            recipients = resolve_task_recipients(
                task(assignee_ids=["u3", "stranger", "", "u1"]), MEMBERS
            )

        assert recipients == ["111"]
        assert "has no Telegram chat id" in caplog.text
        assert "stranger" in caplog.text

    def test_creator_is_not_notified(self) -> None:
        """The user making the change is left out."""
        assert resolve_task_recipients(task(assignee_ids=["u1", "u2"]), MEMBERS, creator_id="u1") == ["222"]

    def test_shared_chat_id_deduplicated(self) -> None:
        """Two members sharing a chat id produce one recipient."""
        members = MEMBERS + [WorkspaceMember(id="u4", user_id="u4", email="d@x.com", telegram_chat_id="111")]
        assert resolve_task_recipients(task(assignee_ids=["u1", "u4"]), members) == ["111"]

    def test_no_assignees(self) -> None:
        """Unassigned tasks have no recipients."""
        assert resolve_task_recipients(task(), MEMBERS) == []


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    async def test_one_failure_does_not_block_others(self) -> None:
        """Every recipient gets a result; failures carry the error."""
        channel = RecordingChannel(failing=["222"])

        results = await NotificationDispatcher(channel).dispatch(["111", "222", "333", "111"], "hi")

        assert [(r.recipient, r.success) for r in results] == [("111", True), ("222", False), ("333", True)]
        assert results[1].error == "chat not found"
        assert sorted(r for r, _ in channel.sent) == ["111", "333"]

    async def test_no_recipients(self) -> None:
        """Nothing is sent to an empty list."""
        channel = RecordingChannel()
        assert await NotificationDispatcher(channel).dispatch(["", None], "hi") == []
        assert channel.sent == []


class TestTelegramChannel:
    """Tests for TelegramChannel against a mocked Bot API."""

    async def test_sends_message(self) -> None:
        """The Bot API receives chat id, text and HTML parse mode."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "result": {}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await TelegramChannel("TOKEN", client=client).send("111", "<b>hi</b>")

        assert str(requests[0].url) == "https://api.telegram.org/botTOKEN/sendMessage"
        assert json.loads(requests[0].content) == {"chat_id": "111", "text": "<b>hi</b>", "parse_mode": "HTML"}

    async def test_api_error(self) -> None:
        """An error response becomes a delivery error with the API description."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NotificationDeliveryError, match="chat not found") as exc_info:
                await TelegramChannel("TOKEN", client=client).send("111", "hi")

        assert exc_info.value.recipient == "111"

    async def test_transport_error(self) -> None:
        """Network failures become delivery errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NotificationDeliveryError, match="request failed"):
                await TelegramChannel("TOKEN", client=client).send("111", "hi")

    def test_requires_token(self) -> None:
        """A channel without a bot token cannot be built."""
        with pytest.raises(ValueError):
            TelegramChannel("")


class TestTaskNotificationService:
    """Tests for TaskNotificationService."""

    async def test_notifies_assignees_from_store(
        self, repositories: RepositoryFactory, store: InMemoryDocumentStore
    ) -> None:
        """Members are loaded from the task's workspace."""
        await seed_member(store, "w1", "u1", user_id="u1", email="a@x.com", telegram_chat_id="111")
        await seed_member(store, "w1", "u2", user_id="u2", email="b@x.com", telegram_chat_id="222")
        channel = RecordingChannel()
        service = TaskNotificationService(repositories, NotificationDispatcher(channel))

        results = await service.notify_assignees(task(assignee_ids=["u1", "u2"]), "updated", creator_id="u2")

        assert [r.recipient for r in results] == ["111"]
        assert channel.sent == [("111", "updated")]

    async def test_nobody_to_notify(self, repositories: RepositoryFactory) -> None:
        """No reachable assignee means no dispatch."""
        channel = RecordingChannel()
        service = TaskNotificationService(repositories, NotificationDispatcher(channel))

        assert await service.notify_assignees(task(assignee_ids=["u9"]), "updated") == []
        assert channel.sent == []

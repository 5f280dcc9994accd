"""Test helpers: fixed clock and document seeding"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from app.features.notifications import NotificationChannel, NotificationDeliveryError
from app.utils.datetime_helper import CANONICAL_TZ

T0 = datetime(2025, 3, 10, 12, 0, tzinfo=CANONICAL_TZ)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


async def seed_workspace(store, workspace_id: str, owner_id: str, name: str = "Team") -> None:
    await store.set(f"workspaces/{workspace_id}", {
        "name": name,
        "description": "",
        "ownerId": owner_id,
        "plan": "FREE",
        "createdAt": T0.isoformat(),
    })


async def seed_member(
    store,
    workspace_id: str,
    member_id: str,
    user_id: Any = None,
    email: str = "",
    role: str = "MEMBER",
    status: str = "ACTIVE",
    telegram_chat_id: Optional[str] = None,
) -> None:
    data: Dict[str, Any] = {"email": email, "role": role, "status": status}
    if user_id is not None:
        data["userId"] = user_id
    if telegram_chat_id is not None:
        data["telegramChatId"] = telegram_chat_id
    await store.set(f"workspaces/{workspace_id}/members/{member_id}", data)


class RecordingChannel(NotificationChannel):
    """Channel that records messages and fails for chosen recipients"""

    name = "recording"

    def __init__(self, failing: Iterable[str] = ()):
        self.sent = []
        self.failing = set(failing)

    async def send(self, recipient: str, message: str) -> None:
        if recipient in self.failing:
            raise NotificationDeliveryError(recipient, "chat not found")
        self.sent.append((recipient, message))

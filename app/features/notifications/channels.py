"""Outbound notification channels"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class NotificationDeliveryError(Exception):
    """A channel failed to deliver a message to one recipient"""

    def __init__(self, recipient: str, message: str):
        super().__init__(message)
        self.recipient = recipient
        self.message = message


class NotificationChannel(ABC):
    """Delivers a text message to one recipient"""

    name = "channel"

    @abstractmethod
    async def send(self, recipient: str, message: str) -> None:
        """Raise NotificationDeliveryError when delivery fails"""


class TelegramChannel(NotificationChannel):
    """Telegram Bot API `sendMessage`"""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = TELEGRAM_API_URL,
        timeout: float = 10.0,
    ):
        if not bot_token:
            raise ValueError("Telegram bot token is required")
        self._bot_token = bot_token
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def send(self, recipient: str, message: str) -> None:
        url = f"{self._base_url}/bot{self._bot_token}/sendMessage"
        payload = {"chat_id": recipient, "text": message, "parse_mode": "HTML"}
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, json=payload, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(recipient, f"Telegram request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400 or not data.get("ok"):
            description = data.get("description") or f"HTTP {response.status_code}"
            raise NotificationDeliveryError(recipient, f"Telegram API error: {description}")

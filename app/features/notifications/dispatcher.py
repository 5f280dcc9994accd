"""Fan-out of one message to many recipients"""
import asyncio
import logging
from typing import Iterable, List, Optional

from pydantic import BaseModel

from .channels import NotificationChannel

logger = logging.getLogger(__name__)


class DeliveryResult(BaseModel):
    """Outcome of delivering to one recipient"""
    recipient: str
    success: bool
    error: Optional[str] = None


class NotificationDispatcher:
    """Sends to every recipient concurrently; one failure never blocks the rest"""

    def __init__(self, channel: NotificationChannel):
        self._channel = channel

    async def dispatch(self, recipients: Iterable[str], message: str) -> List[DeliveryResult]:
        recipients = list(dict.fromkeys(r for r in recipients if r))
        if not recipients:
            logger.info("No recipients to notify")
            return []

        outcomes = await asyncio.gather(
            *(self._channel.send(recipient, message) for recipient in recipients),
            return_exceptions=True,
        )

        results = []
        for recipient, outcome in zip(recipients, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"{self._channel.name} delivery to {recipient[:5]}... failed: {outcome}")
                results.append(DeliveryResult(recipient=recipient, success=False, error=str(outcome)))
            else:
                results.append(DeliveryResult(recipient=recipient, success=True))

        delivered = sum(1 for r in results if r.success)
        logger.info(f"{self._channel.name}: delivered {delivered}/{len(results)}")
        return results

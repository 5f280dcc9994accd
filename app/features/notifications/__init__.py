"""Task notifications feature module"""

from app.features.notifications.channels import (
    NotificationChannel,
    NotificationDeliveryError,
    TelegramChannel,
)
from app.features.notifications.dispatcher import DeliveryResult, NotificationDispatcher
from app.features.notifications.recipients import resolve_task_recipients
from app.features.notifications.service import TaskNotificationService

__all__ = [
    "DeliveryResult",
    "NotificationChannel",
    "NotificationDeliveryError",
    "NotificationDispatcher",
    "TaskNotificationService",
    "TelegramChannel",
    "resolve_task_recipients",
]

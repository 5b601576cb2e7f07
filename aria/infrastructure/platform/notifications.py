from abc import ABC, abstractmethod
from typing import List, Tuple
import structlog

from aria.domain.models.assistant_state import Notification
from aria.infrastructure.observability.logging import assistant_logger, metrics

logger = structlog.get_logger(__name__)


class NotificationSink(ABC):
    """Delivers notifications to the user"""

    async def request_permission(self) -> bool:
        return True

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Dispatch immediately"""
        pass

    @abstractmethod
    async def schedule_after(self, delay_seconds: int, notification: Notification) -> None:
        """Dispatch once the delay has elapsed"""
        pass


class InMemoryNotificationSink(NotificationSink):
    """Keeps every notification it is handed; used when no platform sink is wired"""

    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted
        self.sent: List[Notification] = []
        self.scheduled: List[Tuple[int, Notification]] = []

    async def request_permission(self) -> bool:
        return self.permission_granted

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)
        assistant_logger.log_notification(notification.title, notification.priority)
        metrics.increment_counter("notifications.sent")

    async def schedule_after(self, delay_seconds: int, notification: Notification) -> None:
        self.scheduled.append((delay_seconds, notification))
        assistant_logger.log_notification(notification.title, notification.priority, scheduled_in=delay_seconds)
        metrics.increment_counter("notifications.scheduled")

    def titles(self) -> List[str]:
        return [n.title for n in self.sent]

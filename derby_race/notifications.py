from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union

from derby_race.config import NOTIFICATION_DEFAULT_DURATION_MS, NOTIFICATION_ERROR_DURATION_MS
from derby_race.engine.host import FrameHost

logger = logging.getLogger(__name__)


class NotificationKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def from_value(cls, value: Union[str, "NotificationKind"]) -> "NotificationKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ValueError(f"Unknown notification kind: {value}") from exc


@dataclass(frozen=True)
class Notification:
    id: str
    kind: NotificationKind
    message: str
    duration_ms: int


class NotificationChannel:
    """
    Transient message queue for the UI. Messages with a positive duration
    remove themselves through a host delayed callback; duration 0 persists.
    """

    def __init__(self, host: FrameHost) -> None:
        self.host = host
        self._notifications: List[Notification] = []
        self._expiry_handles: Dict[str, object] = {}

    def notify(self, kind, message: str, duration_ms: Optional[int] = None) -> Notification:
        kind = NotificationKind.from_value(kind)
        if duration_ms is None:
            duration_ms = (
                NOTIFICATION_ERROR_DURATION_MS if kind is NotificationKind.ERROR else NOTIFICATION_DEFAULT_DURATION_MS
            )
        if duration_ms < 0:
            raise ValueError(f"Notification duration cannot be negative: {duration_ms}")

        notification = Notification(id=uuid.uuid4().hex, kind=kind, message=message, duration_ms=duration_ms)
        self._notifications.append(notification)
        logger.debug("Notification [%s] %s", kind.value, message)

        if duration_ms > 0:
            self._expiry_handles[notification.id] = self.host.call_later(
                duration_ms, lambda: self._expire(notification.id)
            )
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationKind.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationKind.ERROR, message)

    def warning(self, message: str) -> Notification:
        return self.notify(NotificationKind.WARNING, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationKind.INFO, message)

    def _expire(self, notification_id: str) -> None:
        self._expiry_handles.pop(notification_id, None)
        self._drop(notification_id)

    def _drop(self, notification_id: str) -> None:
        self._notifications = [n for n in self._notifications if n.id != notification_id]

    def remove(self, notification_id: str) -> None:
        handle = self._expiry_handles.pop(notification_id, None)
        if handle is not None:
            self.host.cancel(handle)
        self._drop(notification_id)

    def clear(self) -> None:
        for handle in self._expiry_handles.values():
            self.host.cancel(handle)
        self._expiry_handles.clear()
        self._notifications = []

    def all_notifications(self) -> List[Notification]:
        return list(self._notifications)

    def __len__(self) -> int:
        return len(self._notifications)

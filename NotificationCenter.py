import logging
import threading
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    message: str
    severity: Severity = Severity.INFO
    duration_ms: int = 4000  # 0 = sticky
    dismissible: bool = True
    created_at: datetime = Field(default_factory=datetime.now)

    def expired(self, now: datetime) -> bool:
        if self.duration_ms <= 0:
            return False
        return now - self.created_at >= timedelta(milliseconds=self.duration_ms)


# notify(message, severity, duration_ms, dismissible) -> None
Notify = Callable[..., None]


class NotificationCenter:  ## User-facing message feed
    def __init__(self, max_visible: int = 3, default_duration_ms: int = 4000):
        self.notifications: List[Notification] = []
        self.max_visible = max_visible
        self.default_duration_ms = default_duration_ms
        self.lock = threading.RLock()

    def notify(
        self,
        message: str,
        severity: Severity = Severity.INFO,
        duration_ms: Optional[int] = None,
        dismissible: bool = True,
    ) -> None:
        notification = Notification(
            message=message,
            severity=Severity(severity),
            duration_ms=self.default_duration_ms if duration_ms is None else duration_ms,
            dismissible=dismissible,
        )
        with self.lock:
            self._cleanup_expired()

            # Drop oldest if at max
            while len(self.notifications) >= self.max_visible:
                dropped = self.notifications.pop(0)
                logger.debug("[NOTIFY] Evicted oldest notification %s", dropped.id)

            self.notifications.append(notification)
        logger.info("[NOTIFY] %s: %s", notification.severity.value, message)

    def active(self) -> List[Notification]:
        with self.lock:
            self._cleanup_expired()
            return list(self.notifications)

    def dismiss(self, notification_id: str) -> bool:
        with self.lock:
            for index, notification in enumerate(self.notifications):
                if notification.id == notification_id:
                    if not notification.dismissible:
                        return False
                    del self.notifications[index]
                    return True
            return False

    def clear(self):
        with self.lock:
            self.notifications.clear()

    def _cleanup_expired(self):
        now = datetime.now()
        self.notifications = [n for n in self.notifications if not n.expired(now)]

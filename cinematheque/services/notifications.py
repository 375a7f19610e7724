"""
Transient user notifications (toasts).

Every surfaced error, warning or confirmation goes through one
NotificationCenter; entries auto-dismiss after a fixed duration.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Severity of a notification."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Log level used when a notification is emitted
LOG_LEVELS = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    """One toast message."""
    message: str
    level: NotificationLevel
    created_at: float
    expires_at: float

    def is_active(self, now: float) -> bool:
        return now < self.expires_at


Listener = Callable[[Notification], None]


class NotificationCenter:
    """
    Collects transient notifications and fans them out to listeners.

    Args:
        duration: Seconds a notification stays visible
        clock: Time source (monotonic seconds), injectable for tests
    """

    def __init__(self, duration: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self._clock = clock
        self._items: List[Notification] = []
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.SUCCESS) -> Notification:
        """Show a notification."""
        level = NotificationLevel(level)
        now = self._clock()
        notification = Notification(
            message=message,
            level=level,
            created_at=now,
            expires_at=now + self.duration
        )
        self._prune(now)
        self._items.append(notification)
        logger.log(LOG_LEVELS[level], f"[Notify] {level.value}: {message}")

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"[Notify] Listener failed: {e}")

        return notification

    def success(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.SUCCESS)

    def info(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.INFO)

    def warning(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.WARNING)

    def error(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.ERROR)

    def active(self) -> List[Notification]:
        """Notifications not yet dismissed, oldest first."""
        self._prune(self._clock())
        return list(self._items)

    @property
    def latest(self) -> Optional[Notification]:
        items = self.active()
        return items[-1] if items else None

    def dismiss_all(self):
        self._items.clear()

    def _prune(self, now: float):
        self._items = [n for n in self._items if n.is_active(now)]

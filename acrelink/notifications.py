"""
Operator notifications.

Every message is logged and kept in a bounded in-memory buffer so a front
end can show the most recent ones as toasts.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 50


@dataclass
class Notification:
    level: str              # "info" or "error"
    message: str
    kind: Optional[str] = None
    created_at: str = ""


class Notifier:
    """
    Collects notifications for display.

    Attributes:
        buffer: Most recent notifications, oldest first
        listeners: Callables invoked with each new notification
    """

    def __init__(self, capacity: int = MAX_NOTIFICATIONS):
        self.buffer: Deque[Notification] = deque(maxlen=capacity)
        self.listeners: List[Callable[[Notification], None]] = []

    def _emit(self, level: str, message: str, kind: str = None) -> Notification:
        note = Notification(
            level=level,
            message=message,
            kind=kind,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.buffer.append(note)
        for listener in self.listeners:
            listener(note)
        return note

    def info(self, message: str) -> Notification:
        logger.info(message)
        return self._emit("info", message)

    def error(self, message: str, kind: str = None) -> Notification:
        logger.warning(f"{message} [{kind}]" if kind else message)
        return self._emit("error", message, kind)

    @property
    def last(self) -> Optional[Notification]:
        return self.buffer[-1] if self.buffer else None

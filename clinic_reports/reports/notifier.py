"""
Report Notifications

Collects user-facing notification messages (success, info, error) raised while
loading, printing and exporting reports. Messages are logged as they arrive
and returned to API clients alongside the response payload.

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
import threading
from typing import List

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    'success': logging.INFO,
    'info': logging.INFO,
    'error': logging.ERROR,
}


class Notification(BaseModel):
    """A single user-facing message"""
    level: str
    message: str


class Notifier:
    """Thread-safe collector of notifications"""

    def __init__(self):
        self._items: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, level: str, message: str):
        logger.log(_LOG_LEVELS.get(level, logging.INFO), f"[{level}] {message}")
        with self._lock:
            self._items.append(Notification(level=level, message=message))

    def success(self, message: str):
        self.notify('success', message)

    def info(self, message: str):
        self.notify('info', message)

    def error(self, message: str):
        self.notify('error', message)

    @property
    def messages(self) -> List[Notification]:
        with self._lock:
            return list(self._items)

    def drain(self) -> List[Notification]:
        """Return all collected notifications and clear the list"""
        with self._lock:
            items, self._items = self._items, []
        return items

    def __len__(self):
        return len(self._items)

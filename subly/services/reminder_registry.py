"""
In-memory record of reminders already sent during the current day.
"""
from __future__ import annotations

import threading
from typing import Any


class ReminderRegistry:
    """Set of ``"{subscription_id}:{days_remaining}"`` keys, cleared once per daily trigger.

    The registry is not persisted: a restart forgets what was sent earlier that
    day, so a reminder may go out twice after a mid-day redeploy.
    """

    def __init__(self) -> None:
        self._sent: set[str] = set()
        self._lock = threading.Lock()

    @staticmethod
    def key(subscription_id: Any, days_remaining: int) -> str:
        return f"{subscription_id}:{days_remaining}"

    def has_sent(self, key: str) -> bool:
        with self._lock:
            return key in self._sent

    def mark_sent(self, key: str) -> bool:
        """Record ``key``; returns False when it was already recorded."""
        with self._lock:
            if key in self._sent:
                return False
            self._sent.add(key)
            return True

    def reset_all(self) -> None:
        with self._lock:
            self._sent.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sent)

"""
Event sink for synchronization progress.

Every log line and stats change of a run is dispatched as a named event to
the registered subscribers and kept in a bounded buffer the API serves as
the recent log.
"""

import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from app.domain.models import LogEntry

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Any], None]

LOG_EVENT = "log"

_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class SyncNotifier:
    """Dispatches sync events to subscribers and keeps recent log entries."""

    def __init__(self, max_logs: int = 500):
        self._subscribers: List[Subscriber] = []
        self._logs: Deque[LogEntry] = deque(maxlen=max_logs)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback receiving ``(event, payload)``.

        Returns:
            Callable: Function removing the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception as e:
                logger.error(f"Subscriber failed handling event '{event}': {e}", exc_info=True)

    def emit_log(
        self,
        message: str,
        level: str = "info",
        shop_id: Optional[str] = None,
        category: str = "sync",
    ) -> LogEntry:
        """Write a log line and relay it as a ``log`` event."""
        entry = LogEntry(message=message, level=level, category=category, shop_id=shop_id)
        logger.log(_LEVELS.get(level, logging.INFO), message)
        self._logs.append(entry)
        self.emit(LOG_EVENT, entry.model_dump(mode="json"))
        return entry

    def recent_logs(self, shop_id: Optional[str] = None, limit: Optional[int] = None) -> List[LogEntry]:
        entries = [e for e in self._logs if shop_id is None or e.shop_id == shop_id]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def clear_logs(self) -> None:
        self._logs.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

"""Short-lived seen-message cache for at-least-once webhook delivery."""

import logging
from datetime import datetime
from typing import Optional

from salesbot.config import settings

logger = logging.getLogger(__name__)


def dedup_key(
    message_id: Optional[str], phone: str, text: str, timestamp: Optional[datetime]
) -> str:
    """Provider message id, falling back to phone + text + timestamp."""
    if message_id:
        return f"id:{message_id}"
    stamp = timestamp.isoformat() if timestamp else ""
    return f"fallback:{phone}|{text}|{stamp}"


class SeenMessageCache:
    """Remembers keys for ``window_sec`` seconds; older entries are evicted lazily."""

    def __init__(self, window_sec: Optional[float] = None) -> None:
        self._window = window_sec or settings.funnel.dedup_window_sec
        self._seen: dict[str, datetime] = {}

    def _evict(self, now: datetime) -> None:
        expired = [
            key for key, seen_at in self._seen.items()
            if (now - seen_at).total_seconds() > self._window
        ]
        for key in expired:
            del self._seen[key]

    def check_and_mark(self, key: str, now: datetime) -> bool:
        """Return True the first time ``key`` is seen within the window."""
        self._evict(now)
        if key in self._seen:
            logger.info("Duplicate inbound message dropped: %s", key)
            return False
        self._seen[key] = now
        return True

    def __len__(self) -> int:
        return len(self._seen)

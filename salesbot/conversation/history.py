"""Bounded per-phone message log and the role-alternation transform."""

import logging
from collections import deque
from typing import Optional

from salesbot.config import settings
from salesbot.schemas.conversation_schema import ConversationMessage, MessageRole

logger = logging.getLogger(__name__)


class MessageHistory:
    """Append-only log per phone; the oldest entries drop once ``cap`` is reached."""

    def __init__(self, cap: Optional[int] = None) -> None:
        self._cap = cap or settings.funnel.history_cap
        self._messages: dict[str, deque[ConversationMessage]] = {}

    def add(self, phone: str, message: ConversationMessage) -> None:
        log = self._messages.get(phone)
        if log is None:
            log = deque(maxlen=self._cap)
            self._messages[phone] = log
        log.append(message)

    def recent(self, phone: str, limit: int = 20) -> list[ConversationMessage]:
        """Most recent ``limit`` messages, oldest first."""
        log = self._messages.get(phone)
        if not log:
            return []
        return list(log)[-limit:]

    def count(self, phone: str) -> int:
        return len(self._messages.get(phone, ()))


def alternate_roles(messages: list[dict[str, str]]) -> list[dict[str, str]]:
    """
    Shape a message sequence for a chat model that requires strict turns.

    System entries are dropped, consecutive same-role entries are merged
    with a newline, and leading assistant turns are removed so the
    sequence starts with the user.
    """
    merged: list[dict[str, str]] = []
    for message in messages:
        role = message["role"]
        if role == MessageRole.SYSTEM.value:
            continue
        if merged and merged[-1]["role"] == role:
            merged[-1] = {"role": role, "content": f"{merged[-1]['content']}\n{message['content']}"}
        else:
            merged.append({"role": role, "content": message["content"]})

    while merged and merged[0]["role"] != MessageRole.USER.value:
        merged.pop(0)
    return merged

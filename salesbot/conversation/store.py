"""
In-memory context store: the single owner of every CustomerContext.

All mutations go through ``update`` so ``previous_state`` and
``updated_at`` bookkeeping stays consistent. Per-phone ``asyncio.Lock``s
serialize the read-modify-write sequence of one customer while different
customers proceed in parallel.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from salesbot.schemas.customer_schema import CustomerContext
from salesbot.utils import utcnow

logger = logging.getLogger(__name__)


class ContextStore:
    """Keyed mapping from phone number to conversation record. Never deletes."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._contexts: dict[str, CustomerContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._fields = CustomerContext.field_names()

    def has(self, phone: str) -> bool:
        return phone in self._contexts

    def get(self, phone: str) -> Optional[CustomerContext]:
        return self._contexts.get(phone)

    def get_or_create(self, phone: str) -> CustomerContext:
        context = self._contexts.get(phone)
        if context is None:
            now = self._clock()
            context = CustomerContext(phone=phone, created_at=now, updated_at=now)
            self._contexts[phone] = context
            logger.info("New conversation started")
        return context

    def update(self, phone: str, /, **changes: Any) -> CustomerContext:
        """
        Merge ``changes`` into the record for ``phone``, creating it if needed.

        Raises:
            ValueError: If a change names a field CustomerContext does not have.
        """
        unknown = set(changes) - self._fields
        if unknown:
            raise ValueError(f"Unknown context fields: {sorted(unknown)}")
        changes.pop("updated_at", None)
        changes.pop("phone", None)

        context = self.get_or_create(phone)
        new_state = changes.get("state")
        if new_state is not None and new_state != context.state:
            context.previous_state = context.state
            logger.info("State change: %s -> %s", context.state.value, new_state.value)

        for name, value in changes.items():
            setattr(context, name, value)
        context.updated_at = max(self._clock(), context.updated_at)
        return context

    def all(self) -> list[CustomerContext]:
        return list(self._contexts.values())

    def lock(self, phone: str) -> asyncio.Lock:
        """Per-phone lock guarding one customer's read-modify-write."""
        lock = self._locks.get(phone)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[phone] = lock
        return lock

    def export(self, phone: str) -> Optional[str]:
        """JSON snapshot of one context for an external persistence layer."""
        context = self._contexts.get(phone)
        return context.to_json() if context else None

    def import_(self, phone: str, data: str) -> CustomerContext:
        """Load a context produced by ``export``, replacing any existing record."""
        context = CustomerContext.from_json(data)
        context.phone = phone
        self._contexts[phone] = context
        return context

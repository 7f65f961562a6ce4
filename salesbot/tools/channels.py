"""Channel provider contracts consumed by the engine and dispatcher.

Concrete adapters (WhatsApp Cloud API, Twilio, WATI, GoHighLevel) live
outside this package and translate their native payloads into these
calls.
"""

from typing import Protocol


class ChannelSender(Protocol):
    async def send_text(self, phone: str, message: str) -> str:
        """Deliver ``message`` and return the provider message id."""
        ...


class HistoryProvider(Protocol):
    async def recent_messages(self, phone: str, limit: int) -> list[dict[str, str]]:
        """Most recent ``{role, content}`` entries for ``phone``, oldest first."""
        ...

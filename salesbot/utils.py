"""Shared utilities used across the sales bot."""

import re
from datetime import datetime, timezone

_CHANNEL_PREFIXES = ("whatsapp:", "wa:")


def normalize_phone(value: str) -> str:
    """Normalize a customer phone into the key used by the context store.

    Channel prefixes (Twilio sends ``whatsapp:+353...``) are dropped and
    everything except digits and a leading + is stripped.

    Examples:
        >>> normalize_phone("whatsapp:+353 87 123 4567")
        '+353871234567'
        >>> normalize_phone("087-123-4567")
        '0871234567'
    """
    value = value.strip()
    lower = value.lower()
    for prefix in _CHANNEL_PREFIXES:
        if lower.startswith(prefix):
            value = value[len(prefix):].strip()
            break
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def utcnow() -> datetime:
    """Timezone-aware current time; the default clock for store and engine."""
    return datetime.now(timezone.utc)


def truncate(text: str, limit: int = 100) -> str:
    """Shorten text for notifications, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."

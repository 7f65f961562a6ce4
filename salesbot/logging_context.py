"""Per-customer logging context.

The customer's phone number is the correlation id of a conversation: the
engine, dispatcher and sweeper bind it so every log line can be grouped
per customer. Log records only carry a masked form (last four digits),
since full numbers are customer data.

Usage:
    from salesbot.logging_context import get_phone_logger, phone_context

    logger = get_phone_logger(__name__)
    with phone_context("+353871234567"):
        logger.info("State advanced")  # [***4567] State advanced
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_PHONE = "-"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(phone)s]: %(message)s"
VISIBLE_DIGITS = 4

_phone: ContextVar[str] = ContextVar("phone", default=NO_PHONE)


def mask_phone(phone: str) -> str:
    """
    Keep only the last digits of a phone number.

    >>> mask_phone("+353871234567")
    '***4567'
    >>> mask_phone("-")
    '-'
    """
    digits = "".join(ch for ch in phone if ch.isdigit())
    if not digits:
        return phone
    return "***" + digits[-VISIBLE_DIGITS:]


def set_phone(phone: str) -> None:
    """Bind the customer for the rest of the current task."""
    _phone.set(phone)


def get_phone() -> str:
    return _phone.get()


@contextmanager
def phone_context(phone: str) -> Iterator[None]:
    """Bind the customer for one block, restoring the previous binding after."""
    token = _phone.set(phone)
    try:
        yield
    finally:
        _phone.reset(token)


class PhoneFilter(logging.Filter):
    """Adds the masked bound phone to every record as ``phone``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.phone = mask_phone(_phone.get())  # type: ignore[attr-defined]
        return True


def get_phone_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(f, PhoneFilter) for f in logger.filters):
        logger.addFilter(PhoneFilter())
    return logger


def install_phone_format(handler: logging.Handler) -> None:
    """Make ``handler`` print the customer column, whichever logger emitted."""
    if not any(isinstance(f, PhoneFilter) for f in handler.filters):
        handler.addFilter(PhoneFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

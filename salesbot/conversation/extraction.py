"""
Two-tier entity extraction: raw-text heuristics first, classifier second.

The heuristic functions are pure and deterministic. ``merge_entities``
applies the precedence rule in one place: heuristics fill empty fields,
the classifier only fills fields that are still empty afterwards, and
nothing already on the context is overwritten.

Usage:
    changes = merge_entities(context, "Fire Stick, worldwide please", intent)
    store.update(context.phone, **changes)
"""

import logging
import re
from typing import Any, Optional

from salesbot.schemas.customer_schema import (
    ContentPreference,
    CustomerContext,
    DeviceType,
    PaymentMethod,
)
from salesbot.schemas.intent_schema import IntentResult

logger = logging.getLogger(__name__)

_MAC_PATTERNS = [
    re.compile(r"(?:[0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}"),
    re.compile(r"\b[0-9A-Fa-f]{12}\b"),
]
_DEVICE_KEY_PATTERN = re.compile(r"device\s*key\s*(?:is|[:=\-])?\s*(?=[A-Za-z0-9]*\d)([A-Za-z0-9]{4,})", re.IGNORECASE)
_HEX_RUN_PATTERN = re.compile(r"[0-9a-f]{6,}", re.IGNORECASE)

# Checked in order, first match wins.
DEVICE_KEYWORDS: list[tuple[str, DeviceType]] = [
    ("fire", DeviceType.FIRESTICK),
    ("firestick", DeviceType.FIRESTICK),
    ("amazon", DeviceType.FIRESTICK),
    ("android phone", DeviceType.ANDROID_PHONE),
    ("phone", DeviceType.ANDROID_PHONE),
    ("mobile", DeviceType.ANDROID_PHONE),
    ("tablet", DeviceType.ANDROID_PHONE),
    ("smart tv", DeviceType.SMART_TV),
    ("samsung", DeviceType.SMART_TV),
    ("lg", DeviceType.SMART_TV),
    ("sony", DeviceType.SMART_TV),
    ("philips", DeviceType.SMART_TV),
    ("android box", DeviceType.ANDROID_BOX),
    ("box", DeviceType.ANDROID_BOX),
    ("xiaomi", DeviceType.ANDROID_BOX),
    ("tivimate", DeviceType.TIVIMATE),
    ("tivi mate", DeviceType.TIVIMATE),
]

CONTENT_KEYWORDS: list[tuple[str, ContentPreference]] = [
    ("english", ContentPreference.ENGLISH),
    ("uk", ContentPreference.ENGLISH),
    ("irish", ContentPreference.ENGLISH),
    ("ireland", ContentPreference.ENGLISH),
    ("europe", ContentPreference.EUROPE),
    ("european", ContentPreference.EUROPE),
    ("worldwide", ContentPreference.WORLDWIDE),
    ("world", ContentPreference.WORLDWIDE),
    ("everything", ContentPreference.WORLDWIDE),
    ("all", ContentPreference.WORLDWIDE),
]

PAYMENT_METHOD_KEYWORDS: list[tuple[str, PaymentMethod]] = [
    ("revolut", PaymentMethod.REVOLUT),
    ("bank", PaymentMethod.REVOLUT),
    ("iban", PaymentMethod.REVOLUT),
    ("paypal", PaymentMethod.PAYPAL),
    ("card", PaymentMethod.CARD),
]

PAYMENT_CONFIRMATION_KEYWORDS = [
    "paid", "sent", "payment", "transferred", "receipt",
    "done", "money sent", "just paid",
]

ADULT_KEYWORDS = ["adult", "xxx", "porn"]
AFFIRMATIVE_KEYWORDS = ["yes", "yeah", "yep", "yup", "correct", "right", "ok", "okay", "sure", "👍"]
NEGATIVE_KEYWORDS = ["no", "nope", "wrong", "incorrect", "not right"]


def _contains_keyword(lower: str, keyword: str) -> bool:
    """
    Case-insensitive match that is stricter than a substring search.

    The keyword must start a word, and keys of three letters or fewer must
    be whole words, so "all" does not hit "install". The cost is that a
    keyword glued to a prefix is missed: "myfirestick" finds no device.
    """
    suffix = "(?![a-z])" if len(keyword) <= 3 else ""
    return re.search(rf"(?<![a-z]){re.escape(keyword)}{suffix}", lower) is not None


def _first_match(text: str, table: list[tuple[str, Any]]) -> Optional[Any]:
    lower = text.lower()
    for keyword, value in table:
        if _contains_keyword(lower, keyword):
            return value
    return None


def extract_mac(text: str) -> Optional[str]:
    """First MAC-address-shaped token, uppercased."""
    for pattern in _MAC_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).upper()
    return None


def extract_device_key(text: str) -> Optional[str]:
    match = _DEVICE_KEY_PATTERN.search(text)
    return match.group(1) if match else None


def extract_device(text: str) -> Optional[DeviceType]:
    return _first_match(text, DEVICE_KEYWORDS)


def extract_content_preference(text: str) -> Optional[ContentPreference]:
    return _first_match(text, CONTENT_KEYWORDS)


def extract_payment_method(text: str) -> Optional[PaymentMethod]:
    return _first_match(text, PAYMENT_METHOD_KEYWORDS)


def is_payment_confirmation(text: str) -> bool:
    lower = text.lower()
    return any(kw in lower for kw in PAYMENT_CONFIRMATION_KEYWORDS)


def wants_adult_content(text: str) -> bool:
    lower = text.lower()
    return any(kw in lower for kw in ADULT_KEYWORDS)


def mentions_tivimate(text: str) -> bool:
    lower = text.lower()
    return "tivimate" in lower or "tivi mate" in lower


def looks_like_device_details(text: str) -> bool:
    """Loose check used while waiting for the MAC/device key screen."""
    return bool(
        extract_mac(text)
        or len(text) > 10
        or ":" in text
        or _HEX_RUN_PATTERN.search(text)
    )


_VISION_KEY_LINE = re.compile(r"^\s*KEY\s*:\s*(\S+)", re.IGNORECASE | re.MULTILINE)


def parse_vision_reading(text: str) -> tuple[Optional[str], Optional[str]]:
    """MAC and device key from the vision model's ``MAC:`` / ``KEY:`` lines."""
    mac = extract_mac(text)
    key_match = _VISION_KEY_LINE.search(text)
    key = key_match.group(1) if key_match else None
    if key and key.lower() in ("none", "null", "n/a"):
        key = None
    return mac, key


def _contains_word(lower: str, word: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", lower) is not None


def is_affirmative(text: str) -> bool:
    lower = text.lower().strip()
    if any(_contains_word(lower, kw) for kw in NEGATIVE_KEYWORDS):
        return False
    return any(_contains_word(lower, kw) for kw in AFFIRMATIVE_KEYWORDS)


def merge_entities(context: CustomerContext, text: str, intent: IntentResult) -> dict[str, Any]:
    """
    Compute context changes from one inbound message.

    Returns only the fields that should change; the caller writes them
    through the store. Sentiment is always replaced with the latest
    classification.
    """
    heuristics: dict[str, Any] = {
        "device": extract_device(text),
        "mac_address": extract_mac(text),
        "device_key": extract_device_key(text),
        "content_preference": extract_content_preference(text),
        "payment_method": extract_payment_method(text),
    }
    entities = intent.entities
    classifier: dict[str, Any] = {
        "device": entities.device,
        "mac_address": entities.mac_address.upper() if entities.mac_address else None,
        "device_key": entities.device_key,
        "content_preference": entities.content_preference,
        "payment_method": entities.payment_method,
        "plan": entities.plan_interest,
    }

    changes: dict[str, Any] = {}
    for source in (heuristics, classifier):
        for field_name, value in source.items():
            if value is None or field_name in changes:
                continue
            if getattr(context, field_name) is None:
                changes[field_name] = value

    if wants_adult_content(text) and not context.wants_adult_content:
        changes["wants_adult_content"] = True
    changes["sentiment"] = intent.sentiment

    filled = sorted(k for k in changes if k != "sentiment")
    if filled:
        logger.debug("Extracted fields: %s", filled)
    return changes

"""Tests for shared utilities and the phone logging context."""

import logging

import pytest

from salesbot.logging_context import (
    NO_PHONE,
    PhoneFilter,
    get_phone,
    get_phone_logger,
    install_phone_format,
    mask_phone,
    phone_context,
    set_phone,
)
from salesbot.utils import normalize_phone, truncate, utcnow


class TestNormalizePhone:
    @pytest.mark.parametrize("raw,expected", [
        ("whatsapp:+353 87 123 4567", "+353871234567"),
        ("+353-87-123-4567", "+353871234567"),
        ("087 123 4567", "0871234567"),
        ("  +44 (20) 7946 0958 ", "+442079460958"),
    ])
    def test_normalizes(self, raw, expected):
        assert normalize_phone(raw) == expected


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("paid") == "paid"

    def test_long_text_cut(self):
        result = truncate("x" * 150)
        assert result == "x" * 100 + "..."


class TestUtcNow:
    def test_timezone_aware(self):
        assert utcnow().tzinfo is not None


class TestPhoneLogging:
    def _record(self):
        return logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)

    def test_filter_adds_masked_phone(self):
        set_phone("+353870000001")
        record = self._record()
        PhoneFilter().filter(record)
        assert record.phone == "***0001"
        assert get_phone() == "+353870000001"

    @pytest.mark.parametrize("raw,expected", [
        ("+353871234567", "***4567"),
        ("whatsapp:+44 7700 900123", "***0123"),
        ("12", "***12"),
        (NO_PHONE, NO_PHONE),
    ])
    def test_mask_phone(self, raw, expected):
        assert mask_phone(raw) == expected

    def test_phone_context_restores_previous_binding(self):
        set_phone("+10000000001")
        with phone_context("+10000000002"):
            assert get_phone() == "+10000000002"
            set_phone("+10000000003")
        assert get_phone() == "+10000000001"

    def test_filter_attached_once(self):
        logger = get_phone_logger("salesbot.test_phone_logger")
        get_phone_logger("salesbot.test_phone_logger")
        assert sum(isinstance(f, PhoneFilter) for f in logger.filters) == 1

    def test_install_phone_format(self):
        handler = logging.StreamHandler()
        install_phone_format(handler)
        install_phone_format(handler)
        assert sum(isinstance(f, PhoneFilter) for f in handler.filters) == 1
        set_phone("+353871234567")
        record = self._record()
        handler.filter(record)
        assert "[***4567]: msg" in handler.format(record)

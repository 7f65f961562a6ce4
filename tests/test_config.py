"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from salesbot.config import (
    AppConfig,
    FunnelConfig,
    ModelConfig,
    _safe_float,
    _safe_int,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_defaults(self):
        config = AppConfig()
        assert config.business.trial_hours == 24
        assert config.funnel.history_cap == 50
        assert config.funnel.model_history_window == 10
        assert config.funnel.dedup_window_sec == 300

    def test_invalid_temperature_too_high(self):
        config = replace(AppConfig(), model=replace(ModelConfig(), llm_temperature=3.0))
        with pytest.raises(ValueError, match="LLM_TEMPERATURE"):
            _validate_config(config)

    def test_invalid_timeout(self):
        config = replace(AppConfig(), model=replace(ModelConfig(), request_timeout_sec=0))
        with pytest.raises(ValueError, match="LLM_TIMEOUT"):
            _validate_config(config)

    def test_zero_history_cap(self):
        config = replace(AppConfig(), funnel=replace(FunnelConfig(), history_cap=0))
        with pytest.raises(ValueError, match="HISTORY_CAP"):
            _validate_config(config)

    def test_window_larger_than_cap(self):
        config = replace(
            AppConfig(),
            funnel=replace(FunnelConfig(), history_cap=5, model_history_window=10),
        )
        with pytest.raises(ValueError, match="MODEL_HISTORY_WINDOW"):
            _validate_config(config)

    def test_non_positive_dedup_window(self):
        config = replace(AppConfig(), funnel=replace(FunnelConfig(), dedup_window_sec=-1))
        with pytest.raises(ValueError, match="DEDUP_WINDOW_SEC"):
            _validate_config(config)


class TestSafeParsers:
    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_SALESBOT_INT", "42")
        assert _safe_int("TEST_SALESBOT_INT", "1") == 42

    def test_safe_int_bad_value(self, monkeypatch):
        monkeypatch.setenv("TEST_SALESBOT_INT", "lots")
        with pytest.raises(ValueError, match="TEST_SALESBOT_INT"):
            _safe_int("TEST_SALESBOT_INT", "1")

    def test_safe_float_default(self, monkeypatch):
        monkeypatch.delenv("TEST_SALESBOT_FLOAT", raising=False)
        assert _safe_float("TEST_SALESBOT_FLOAT", "2.5") == 2.5

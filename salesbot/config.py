"""
Centralized configuration with environment variable overrides.

Brand copy, payment details, model settings and funnel thresholds all
live here. Nothing business-specific is hardcoded in the engine.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BusinessConfig:
    """Brand, persona and payment settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "BingeBear")
    agent_persona: str = os.getenv("AGENT_PERSONA", "Joe")
    website: str = os.getenv("BUSINESS_WEBSITE", "bingebear.tv")
    review_url: str = os.getenv("REVIEW_URL", "trustpilot.com/review/bingebear.tv")
    admin_phone: str = os.getenv("ADMIN_PHONE", "")
    bank_account_name: str = os.getenv("BANK_ACCOUNT_NAME", "")
    bank_iban: str = os.getenv("BANK_IBAN", "")
    bank_bic: str = os.getenv("BANK_BIC", "")
    paypal_address: str = os.getenv("PAYPAL_ADDRESS", "")
    trial_hours: int = _safe_int("TRIAL_HOURS", "24")


@dataclass(frozen=True)
class ModelConfig:
    """Hosted language model settings."""

    api_key: str = os.getenv("OPENAI_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    vision_model: str = os.getenv("VISION_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.3")
    reply_max_tokens: int = _safe_int("REPLY_MAX_TOKENS", "500")
    intent_max_tokens: int = _safe_int("INTENT_MAX_TOKENS", "300")
    request_timeout_sec: float = _safe_float("LLM_TIMEOUT", "20.0")


@dataclass(frozen=True)
class FunnelConfig:
    """History, dedup and follow-up thresholds."""

    history_cap: int = _safe_int("HISTORY_CAP", "50")
    model_history_window: int = _safe_int("MODEL_HISTORY_WINDOW", "10")
    channel_history_limit: int = _safe_int("CHANNEL_HISTORY_LIMIT", "5")
    dedup_window_sec: float = _safe_float("DEDUP_WINDOW_SEC", "300")
    followup_sweep_interval_sec: float = _safe_float("FOLLOWUP_SWEEP_INTERVAL", "300")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    funnel: FunnelConfig = field(default_factory=FunnelConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "whatsapp-sales-bot")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.model.request_timeout_sec <= 0:
        raise ValueError(
            f"LLM_TIMEOUT must be > 0, got {config.model.request_timeout_sec}"
        )
    for name, value in [
        ("REPLY_MAX_TOKENS", config.model.reply_max_tokens),
        ("INTENT_MAX_TOKENS", config.model.intent_max_tokens),
        ("HISTORY_CAP", config.funnel.history_cap),
        ("MODEL_HISTORY_WINDOW", config.funnel.model_history_window),
        ("CHANNEL_HISTORY_LIMIT", config.funnel.channel_history_limit),
        ("TRIAL_HOURS", config.business.trial_hours),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    if config.funnel.model_history_window > config.funnel.history_cap:
        raise ValueError(
            "MODEL_HISTORY_WINDOW must not exceed HISTORY_CAP, "
            f"got {config.funnel.model_history_window} > {config.funnel.history_cap}"
        )
    if config.funnel.dedup_window_sec <= 0:
        raise ValueError(
            f"DEDUP_WINDOW_SEC must be > 0, got {config.funnel.dedup_window_sec}"
        )
    if config.funnel.followup_sweep_interval_sec <= 0:
        raise ValueError(
            "FOLLOWUP_SWEEP_INTERVAL must be > 0, "
            f"got {config.funnel.followup_sweep_interval_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()

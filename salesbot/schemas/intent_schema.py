"""Structured intent classification result parsed from the language model."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from salesbot.schemas.customer_schema import (
    ContentPreference,
    DeviceType,
    PaymentMethod,
    PlanType,
    Sentiment,
)

_EMPTY_MARKERS = {"", "null", "none", "n/a", "unknown"}


class Intent(str, Enum):
    GREETING = "greeting"
    DEVICE_INFO = "device_info"
    MAC_ADDRESS = "mac_address"
    PRICING = "pricing"
    TRIAL_REQUEST = "trial_request"
    PAYMENT = "payment"
    TECHNICAL_ISSUE = "technical_issue"
    CONTENT_PREFERENCE = "content_preference"
    CONFIRMATION = "confirmation"
    OBJECTION = "objection"
    HUMAN_REQUEST = "human_request"
    OTHER = "other"


def _coerce_enum(value: Any, enum_type: type[Enum]) -> Any:
    """Map placeholder strings and unknown labels to None."""
    if value is None:
        return None
    if isinstance(value, enum_type):
        return value
    text = str(value).strip().lower()
    if text in _EMPTY_MARKERS:
        return None
    try:
        return enum_type(text)
    except ValueError:
        return None


class IntentEntities(BaseModel):
    """Optional entities the classifier may pull out of a message."""

    device: Optional[DeviceType] = None
    plan_interest: Optional[PlanType] = None
    content_preference: Optional[ContentPreference] = None
    mac_address: Optional[str] = None
    device_key: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    @field_validator("device", mode="before")
    @classmethod
    def _device(cls, v: Any) -> Any:
        return _coerce_enum(v, DeviceType)

    @field_validator("plan_interest", mode="before")
    @classmethod
    def _plan(cls, v: Any) -> Any:
        return _coerce_enum(v, PlanType)

    @field_validator("content_preference", mode="before")
    @classmethod
    def _content(cls, v: Any) -> Any:
        return _coerce_enum(v, ContentPreference)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _payment(cls, v: Any) -> Any:
        return _coerce_enum(v, PaymentMethod)

    @field_validator("mac_address", "device_key", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Any:
        if v is None:
            return None
        text = str(v).strip()
        return None if text.lower() in _EMPTY_MARKERS else text


class IntentResult(BaseModel):
    """Per-message classification. Never persisted; only its effects are."""

    intent: Intent = Intent.OTHER
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    entities: IntentEntities = Field(default_factory=IntentEntities)
    sentiment: Sentiment = Sentiment.NEUTRAL
    needs_human: bool = False

    @field_validator("intent", mode="before")
    @classmethod
    def _intent(cls, v: Any) -> Any:
        return _coerce_enum(v, Intent) or Intent.OTHER

    @field_validator("sentiment", mode="before")
    @classmethod
    def _sentiment(cls, v: Any) -> Any:
        return _coerce_enum(v, Sentiment) or Sentiment.NEUTRAL

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Any:
        try:
            return min(max(float(v), 0.0), 1.0)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("entities", mode="before")
    @classmethod
    def _entities(cls, v: Any) -> Any:
        return v if v is not None else {}

    @classmethod
    def fallback(cls, confidence: float = 0.0) -> "IntentResult":
        """Neutral result used whenever classification is unavailable."""
        return cls(confidence=confidence)

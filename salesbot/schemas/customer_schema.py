"""Customer data models and the per-phone conversation record."""

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CustomerState(str, Enum):
    """Funnel position of a customer; see conversation.state_machine for ordering."""
    NEW = "new"
    AWAITING_DEVICE = "awaiting_device"
    AWAITING_MAC = "awaiting_mac"
    AWAITING_CONTENT_PREF = "awaiting_content_pref"
    TRIAL_PENDING = "trial_pending"
    TRIAL_ACTIVE = "trial_active"
    TRIAL_EXPIRED = "trial_expired"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_PENDING = "payment_pending"
    ACTIVE_SUBSCRIBER = "active_subscriber"
    CHURNED = "churned"
    NEEDS_HUMAN = "needs_human"


class DeviceType(str, Enum):
    FIRESTICK = "firestick"
    ANDROID_PHONE = "android_phone"
    SMART_TV = "smart_tv"
    ANDROID_BOX = "android_box"
    TIVIMATE = "tivimate"
    OTHER = "other"


class ContentPreference(str, Enum):
    ENGLISH = "english"
    EUROPE = "europe"
    WORLDWIDE = "worldwide"


class PlanType(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    TWO_YEARS = "2years"
    THREE_YEARS = "3years"
    LIFETIME = "lifetime"


class PaymentMethod(str, Enum):
    REVOLUT = "revolut"
    PAYPAL = "paypal"
    CARD = "card"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    FRUSTRATED = "frustrated"


class Credentials(BaseModel):
    """Streaming account details issued by the admin on activation."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    url: str = Field(min_length=1)
    stream_url: Optional[str] = None

    def with_stream_url(self) -> "Credentials":
        """Return a copy carrying the derived M3U playlist URL."""
        base = self.url.rstrip("/")
        stream = (
            f"{base}/get.php?username={self.username}&password={self.password}"
            "&type=m3u_plus&output=ts"
        )
        return self.model_copy(update={"stream_url": stream})


_DATETIME_FIELDS = (
    "trial_started_at", "trial_expires_at", "subscribed_at", "expires_at",
    "last_message_at", "created_at", "updated_at",
)
_ENUM_FIELDS: dict[str, type[Enum]] = {
    "state": CustomerState,
    "previous_state": CustomerState,
    "device": DeviceType,
    "content_preference": ContentPreference,
    "plan": PlanType,
    "payment_method": PaymentMethod,
    "sentiment": Sentiment,
}


@dataclass
class CustomerContext:
    """
    Conversation record for one customer phone number.

    Owned by the ContextStore. Every change goes through
    ``ContextStore.update`` so ``previous_state`` and ``updated_at``
    stay consistent.
    """
    phone: str
    created_at: datetime
    updated_at: datetime
    state: CustomerState = CustomerState.NEW
    previous_state: Optional[CustomerState] = None
    name: Optional[str] = None
    id: Optional[str] = None

    # Device and preferences
    device: Optional[DeviceType] = None
    mac_address: Optional[str] = None
    device_key: Optional[str] = None
    content_preference: Optional[ContentPreference] = None
    wants_adult_content: bool = False
    language: Optional[str] = None

    # Screenshot-read values waiting for a yes/no from the customer
    pending_mac_address: Optional[str] = None
    pending_device_key: Optional[str] = None

    # Trial and subscription
    plan: Optional[PlanType] = None
    trial_started_at: Optional[datetime] = None
    trial_expires_at: Optional[datetime] = None
    subscribed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    payment_pending: bool = False
    credentials: Optional[Credentials] = None

    # Engagement
    last_message_at: Optional[datetime] = None
    follow_ups_sent: int = 0
    last_follow_up_type: Optional[str] = None

    # Escalation
    needs_human: bool = False
    escalation_reason: Optional[str] = None
    sentiment: Optional[Sentiment] = None

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def has_device_details(self) -> bool:
        """MAC or device key collected; TiviMate logs in with credentials instead."""
        return bool(self.mac_address or self.device_key or self.device == DeviceType.TIVIMATE)

    def has_pending_device_details(self) -> bool:
        return bool(self.pending_mac_address or self.pending_device_key)

    def to_json(self) -> str:
        """Serialize for an external persistence layer (ISO timestamps)."""
        data = asdict(self)
        data["credentials"] = self.credentials.model_dump() if self.credentials else None
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
            elif isinstance(value, Enum):
                data[key] = value.value
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> "CustomerContext":
        """Rebuild a context from ``to_json`` output."""
        data: dict[str, Any] = json.loads(raw)
        known = cls.field_names()
        data = {k: v for k, v in data.items() if k in known}
        for key in _DATETIME_FIELDS:
            if data.get(key):
                data[key] = datetime.fromisoformat(data[key])
        for key, enum_type in _ENUM_FIELDS.items():
            if data.get(key) is not None:
                data[key] = enum_type(data[key])
        if data.get("credentials"):
            data["credentials"] = Credentials.model_validate(data["credentials"])
        return cls(**data)

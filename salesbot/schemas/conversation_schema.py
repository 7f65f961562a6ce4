"""Conversation history and admin notification schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class NotificationType(str, Enum):
    TRIAL_REQUEST = "trial_request"
    PAYMENT_RECEIVED = "payment_received"
    TECHNICAL_ISSUE = "technical_issue"
    ESCALATION = "escalation"


class MessageMetadata(BaseModel):
    """What produced a message: classifier output or the action that sent it."""

    intent: Optional[str] = None
    confidence: Optional[float] = None
    triggered_action: Optional[str] = None


class ConversationMessage(BaseModel):
    """A single message exchanged with a customer. Never mutated once logged."""

    model_config = {"frozen": True}

    role: MessageRole
    content: str
    timestamp: datetime
    metadata: Optional[MessageMetadata] = None


class AdminNotification(BaseModel):
    """Out-of-band alert asking a human operator to act."""

    type: NotificationType
    message: str
    customer_phone: str
    data: dict[str, Any] = Field(default_factory=dict)

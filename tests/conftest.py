"""Shared test fixtures, fakes and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from salesbot.conversation.engine import ConversationEngine
from salesbot.conversation.history import MessageHistory
from salesbot.conversation.store import ContextStore
from salesbot.errors import LLMUnavailableError
from salesbot.schemas.customer_schema import CustomerContext, CustomerState
from salesbot.schemas.intent_schema import Intent, IntentResult

START = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Settable clock shared by store and engine."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeLLM:
    """Records completion calls and returns a preset reply."""

    def __init__(
        self,
        reply: str = "Sure thing! 👍",
        configured: bool = True,
        error: Optional[Exception] = None,
        vision_text: Optional[str] = None,
    ) -> None:
        self.reply = reply
        self.configured = configured
        self.error = error
        self.vision_text = vision_text
        self.calls: list[dict] = []
        self.vision_calls = 0

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, system_prompt, messages, max_tokens) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": messages,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.reply

    async def extract_text_from_image(self, image_bytes, mime_type) -> Optional[str]:
        self.vision_calls += 1
        return self.vision_text


class FakeClassifier:
    """Returns the queued result for the next message, else a neutral one."""

    def __init__(self) -> None:
        self.queue: list[IntentResult] = []

    def push(self, intent: Intent = Intent.OTHER, **kwargs) -> None:
        self.queue.append(IntentResult(intent=intent, confidence=0.9, **kwargs))

    async def detect_intent(self, text: str) -> IntentResult:
        if self.queue:
            return self.queue.pop(0)
        return IntentResult(confidence=0.9)


class FakeChannel:
    """Records sends; phones listed in ``fail_for`` raise."""

    def __init__(self, fail_for: Optional[set[str]] = None) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail_for = fail_for or set()

    async def send_text(self, phone: str, message: str) -> str:
        if phone in self.fail_for:
            raise ConnectionError("provider rejected the message")
        self.sent.append((phone, message))
        return f"msg-{len(self.sent)}"

    def to(self, phone: str) -> list[str]:
        return [text for p, text in self.sent if p == phone]


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications = []

    async def notify_admin(self, notification, context=None) -> bool:
        self.notifications.append(notification)
        return True


def make_context(
    phone: str = "+353870000001",
    state: CustomerState = CustomerState.NEW,
    now: datetime = START,
    **fields,
) -> CustomerContext:
    """Helper to create a CustomerContext with sensible defaults."""
    return CustomerContext(phone=phone, created_at=now, updated_at=now, state=state, **fields)


def make_engine(
    clock: Optional[FixedClock] = None,
    llm: Optional[FakeLLM] = None,
    classifier: Optional[FakeClassifier] = None,
    notifier: Optional[RecordingNotifier] = None,
    history_provider=None,
) -> ConversationEngine:
    clock = clock or FixedClock()
    return ConversationEngine(
        store=ContextStore(clock=clock),
        history=MessageHistory(),
        classifier=classifier or FakeClassifier(),
        llm=llm or FakeLLM(),
        notifier=notifier,
        history_provider=history_provider,
        clock=clock,
    )


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def unavailable_llm():
    return FakeLLM(error=LLMUnavailableError("timed out"))

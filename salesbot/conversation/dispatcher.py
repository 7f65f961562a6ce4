"""
Edges between the engine and the outside world.

``InboundDispatcher`` turns provider webhook events into engine calls and
outbound sends, dropping replays. ``AdminActions`` validates operator
input before it reaches the engine. ``FollowUpSweeper`` polls the store
for due nudges.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError

from salesbot.config import settings
from salesbot.conversation.dedup import SeenMessageCache, dedup_key
from salesbot.conversation.engine import ContextView, ConversationEngine, EngineReply
from salesbot.conversation.followups import find_due, is_trial_overdue, render_followup
from salesbot.errors import ChannelSendError, InvalidAdminInputError, SalesBotError
from salesbot.logging_context import get_phone_logger, phone_context, set_phone
from salesbot.schemas.customer_schema import Credentials, CustomerContext, CustomerState
from salesbot.tools.channels import ChannelSender
from salesbot.tools.plans import validate_plan
from salesbot.utils import normalize_phone, utcnow

logger = get_phone_logger(__name__)


@dataclass
class InboundEvent:
    """Provider-neutral inbound message."""
    phone: str
    text: str = ""
    message_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    image_bytes: Optional[bytes] = None
    mime_type: Optional[str] = None


async def send_or_raise(sender: ChannelSender, phone: str, text: str) -> str:
    """Send through the channel; failures are logged and surfaced as ChannelSendError."""
    try:
        return await sender.send_text(phone, text)
    except ChannelSendError:
        logger.error("Send to customer failed")
        raise
    except Exception as e:
        logger.error("Send to customer failed: %s", e)
        raise ChannelSendError(phone, str(e)) from e


class InboundDispatcher:
    """Deduplicates webhook events, runs the engine and sends the reply."""

    def __init__(
        self,
        engine: ConversationEngine,
        sender: ChannelSender,
        seen: Optional[SeenMessageCache] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._engine = engine
        self._sender = sender
        self._seen = seen or SeenMessageCache()
        self._clock = clock

    async def handle(self, event: InboundEvent) -> Optional[EngineReply]:
        """
        Process one event. Returns None for duplicates.

        Raises:
            ChannelSendError: If the reply could not be sent. The context
                changes from this message are kept.
        """
        phone = normalize_phone(event.phone)
        set_phone(phone)
        key = dedup_key(event.message_id, phone, event.text, event.timestamp)
        if not self._seen.check_and_mark(key, self._clock()):
            return None

        if event.image_bytes:
            reply = await self._engine.handle_image(
                phone, event.image_bytes, event.mime_type or "image/jpeg", event.text
            )
        else:
            reply = await self._engine.handle_message(phone, event.text)

        await send_or_raise(self._sender, phone, reply.message)
        return reply


class AdminActions:
    """Operator-facing operations with input validation."""

    def __init__(self, engine: ConversationEngine, sender: ChannelSender) -> None:
        self._engine = engine
        self._sender = sender

    @staticmethod
    def _credentials(data: dict[str, Any]) -> Credentials:
        try:
            return Credentials.model_validate(data)
        except ValidationError as e:
            missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise InvalidAdminInputError(f"Invalid credentials, check fields: {missing}") from None

    def _known_customer(self, phone: str) -> CustomerContext:
        context = self._engine.store.get(phone)
        if context is None:
            raise InvalidAdminInputError(f"Unknown customer {phone}")
        return context

    async def activate_trial(self, phone: str, credentials: dict[str, Any]) -> EngineReply:
        phone = normalize_phone(phone)
        reply = await self._engine.activate_trial(phone, self._credentials(credentials))
        await send_or_raise(self._sender, phone, reply.message)
        return reply

    async def activate_subscription(
        self, phone: str, plan: str, credentials: dict[str, Any]
    ) -> EngineReply:
        phone = normalize_phone(phone)
        plan_type = validate_plan(plan)
        creds = self._credentials(credentials)
        reply = await self._engine.activate_subscription(phone, plan_type, creds)
        await send_or_raise(self._sender, phone, reply.message)
        return reply

    async def send_message(self, phone: str, text: str) -> str:
        """Send a manual operator message and log it in the customer's history."""
        phone = normalize_phone(phone)
        if not text or not text.strip():
            raise InvalidAdminInputError("Message text is empty")
        set_phone(phone)
        message_id = await send_or_raise(self._sender, phone, text)
        await self._engine.record_outbound(phone, text, "admin_manual_message")
        return message_id

    async def send_followup(self, phone: str, followup_type: str) -> str:
        """Send a follow-up template and bump the customer's follow-up counter."""
        phone = normalize_phone(phone)
        context = self._known_customer(phone)
        text = render_followup(followup_type, context)
        if text is None:
            raise InvalidAdminInputError(f"Unknown follow-up type {followup_type!r}")
        set_phone(phone)
        message_id = await send_or_raise(self._sender, phone, text)
        await self._engine.record_outbound(phone, text, f"followup_{followup_type}")
        await self._engine.mark_followup_sent(phone, followup_type)
        logger.info("Follow-up sent: %s", followup_type)
        return message_id

    async def resolve_escalation(self, phone: str, state: Optional[str] = None) -> CustomerContext:
        phone = normalize_phone(phone)
        self._known_customer(phone)
        target: Optional[CustomerState] = None
        if state:
            try:
                target = CustomerState(state.strip().lower())
            except ValueError:
                raise InvalidAdminInputError(f"Unknown state {state!r}") from None
        return await self._engine.resolve_escalation(phone, target)

    def get_context_view(self, phone: str) -> Optional[ContextView]:
        return self._engine.get_context_view(normalize_phone(phone))


class FollowUpSweeper:
    """Periodic, cancellable follow-up sweep over the whole store."""

    def __init__(
        self,
        engine: ConversationEngine,
        admin: AdminActions,
        sender: ChannelSender,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._engine = engine
        self._admin = admin
        self._sender = sender
        self._clock = clock

    async def run_once(self, now: Optional[datetime] = None) -> list[tuple[str, str]]:
        """Send everything due. Returns ``(phone, type)`` for each successful send."""
        now = now or self._clock()
        sent: list[tuple[str, str]] = []

        for context in self._engine.store.all():
            if not is_trial_overdue(context, now):
                continue
            with phone_context(context.phone):
                try:
                    reply = await self._engine.expire_trial(context.phone)
                    await send_or_raise(self._sender, context.phone, reply.message)
                except SalesBotError as e:
                    logger.error("Trial expiry notice failed: %s", e)
                    continue
            sent.append((context.phone, "trial_expired"))

        for context, followup in find_due(self._engine.store.all(), now):
            with phone_context(context.phone):
                try:
                    await self._admin.send_followup(context.phone, followup.type)
                except SalesBotError as e:
                    logger.error("Follow-up %s failed: %s", followup.type, e)
                    continue
            sent.append((context.phone, followup.type))
        return sent

    async def run_forever(self, interval_sec: Optional[float] = None) -> None:
        interval = interval_sec or settings.funnel.followup_sweep_interval_sec
        logger.info("Follow-up sweeper started (every %.0fs)", interval)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Follow-up sweep failed")
            await asyncio.sleep(interval)

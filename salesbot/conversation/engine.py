"""
Conversation engine: the sales funnel state machine.

For every inbound message the engine runs, in order:
1. Escalation check (short-circuits everything else)
2. Pending screenshot confirmation
3. Two-tier entity extraction into the context
4. Automatic state inference from the collected fields
5. Cross-cutting intents (pricing, technical issue)
6. The entry prompt of an auto-advanced state, or the current state's handler

Context mutations happen under the customer's lock and always go through
``ContextStore.update``. Model calls and admin notifications run outside
the lock.

Usage:
    engine = ConversationEngine(store, history, classifier, llm, notifier)
    reply = await engine.handle_message("+353871234567", "hi")
    await channel.send_text(reply.phone, reply.message)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from salesbot.config import AppConfig, settings
from salesbot.conversation.extraction import (
    extract_payment_method,
    is_affirmative,
    is_payment_confirmation,
    looks_like_device_details,
    mentions_tivimate,
    merge_entities,
    parse_vision_reading,
)
from salesbot.conversation.guardrails import EscalationGuardrail
from salesbot.conversation.history import MessageHistory, alternate_roles
from salesbot.conversation.state_machine import infer_state
from salesbot.conversation.store import ContextStore
from salesbot.errors import LLMUnavailableError
from salesbot.logging_context import get_phone_logger, set_phone
from salesbot.prompts import messages
from salesbot.prompts.prompt_templates import build_system_prompt
from salesbot.prompts.system_prompts import SALES_SYSTEM_PROMPT
from salesbot.schemas.conversation_schema import (
    AdminNotification,
    ConversationMessage,
    MessageMetadata,
    MessageRole,
    NotificationType,
)
from salesbot.schemas.customer_schema import (
    ContentPreference,
    Credentials,
    CustomerContext,
    CustomerState,
    DeviceType,
    PaymentMethod,
    PlanType,
)
from salesbot.schemas.intent_schema import Intent, IntentResult
from salesbot.tools.channels import HistoryProvider
from salesbot.tools.intent import IntentClassifier
from salesbot.tools.llm import LLMClient
from salesbot.tools.notifications import AdminNotifier
from salesbot.tools.plans import match_plan, plan_expiry
from salesbot.utils import truncate, utcnow

logger = get_phone_logger(__name__)

ADMIN_VIEW_HISTORY_LIMIT = 20
SUBSCRIBE_KEYWORDS = ["yes", "subscribe", "buy"]
PRICING_KEYWORDS = ["price", "plan"]
SCREENSHOT_MARKER = "[screenshot]"

# Screenshots before the trial are MAC/device-key screens, later ones receipts
DEVICE_CAPTURE_STATES = frozenset({
    CustomerState.NEW,
    CustomerState.AWAITING_DEVICE,
    CustomerState.AWAITING_MAC,
    CustomerState.AWAITING_CONTENT_PREF,
})
RECEIPT_STATES = frozenset({
    CustomerState.TRIAL_EXPIRED,
    CustomerState.AWAITING_PAYMENT,
    CustomerState.PAYMENT_PENDING,
})


@dataclass
class EngineReply:
    """What the engine wants sent back to one customer."""
    phone: str
    message: str
    state: CustomerState
    notifications: list[AdminNotification] = field(default_factory=list)
    intent: Optional[IntentResult] = None
    action: Optional[str] = None


@dataclass
class ContextView:
    """Admin-facing snapshot of one customer."""
    context: CustomerContext
    history: list[ConversationMessage]


@dataclass
class _Decision:
    """Outcome of the locked decision step; ``message`` None means generate."""
    message: Optional[str]
    action: str
    notifications: list[AdminNotification] = field(default_factory=list)
    system_prompt: Optional[str] = None


class ConversationEngine:
    """Drives one business's customers through the sales funnel."""

    def __init__(
        self,
        store: ContextStore,
        history: MessageHistory,
        classifier: IntentClassifier,
        llm: LLMClient,
        notifier: Optional[AdminNotifier] = None,
        history_provider: Optional[HistoryProvider] = None,
        clock: Callable[[], datetime] = utcnow,
        config: AppConfig = settings,
    ) -> None:
        self._store = store
        self._history = history
        self._classifier = classifier
        self._llm = llm
        self._notifier = notifier
        self._history_provider = history_provider
        self._clock = clock
        self._config = config
        self._escalation = EscalationGuardrail()
        self._handlers: dict[CustomerState, Callable[[CustomerContext, str, IntentResult], _Decision]] = {
            CustomerState.NEW: self._handle_new,
            CustomerState.AWAITING_DEVICE: self._handle_awaiting_device,
            CustomerState.AWAITING_MAC: self._handle_awaiting_mac,
            CustomerState.AWAITING_CONTENT_PREF: self._handle_awaiting_content_pref,
            CustomerState.TRIAL_ACTIVE: self._handle_trial_active,
            CustomerState.TRIAL_EXPIRED: self._handle_payment_flow,
            CustomerState.AWAITING_PAYMENT: self._handle_payment_flow,
            CustomerState.PAYMENT_PENDING: self._handle_payment_pending,
        }

    @property
    def store(self) -> ContextStore:
        return self._store

    @property
    def history(self) -> MessageHistory:
        return self._history

    # ------------------------------------------------------------------ #
    # Inbound messages
    # ------------------------------------------------------------------ #

    async def handle_message(self, phone: str, text: str) -> EngineReply:
        """Process one inbound customer message and return the reply."""
        set_phone(phone)
        intent = await self._classifier.detect_intent(text)

        async with self._store.lock(phone):
            now = self._clock()
            context = self._store.update(phone, last_message_at=now)
            self._record(phone, MessageRole.USER, text, MessageMetadata(
                intent=intent.intent.value, confidence=intent.confidence,
            ))
            decision = self._decide(context, text, intent, now)

        return await self._finish(phone, text, decision, intent)

    async def _finish(
        self, phone: str, text: str, decision: _Decision, intent: Optional[IntentResult] = None
    ) -> EngineReply:
        """Generate if needed, log the reply, then notify the admin outside the lock."""
        if decision.message is None:
            decision = await self._generate(phone, text, decision)

        async with self._store.lock(phone):
            self._record(phone, MessageRole.ASSISTANT, decision.message, MessageMetadata(
                triggered_action=decision.action,
            ))
            context = self._store.get_or_create(phone)
            state = context.state

        await self._dispatch(decision.notifications, context)
        return EngineReply(
            phone=phone,
            message=decision.message,
            state=state,
            notifications=decision.notifications,
            intent=intent,
            action=decision.action,
        )

    def _decide(
        self, context: CustomerContext, text: str, intent: IntentResult, now: datetime
    ) -> _Decision:
        phone = context.phone

        check = self._escalation.check_escalation_needed(context, text, intent)
        if not check.passed:
            return self._escalate(context, text, intent, check.message or "Escalation")

        self._resolve_pending_details(context, text)
        self._store.update(phone, **merge_entities(context, text, intent))

        notifications: list[AdminNotification] = []
        previous = context.state
        target = infer_state(context)
        if target is not None:
            self._store.update(phone, state=target)
            if target == CustomerState.TRIAL_PENDING:
                notifications.append(self._trial_request(context))

        decision = self._cross_cutting(context, text, intent)
        if decision is None and target is not None:
            decision = self._entry_prompt(context, target, previous)
        if decision is None:
            handler = self._handlers.get(context.state, self._handle_free_form)
            decision = handler(context, text, intent)

        decision.notifications = notifications + decision.notifications
        if decision.message is None:
            decision.system_prompt = build_system_prompt(SALES_SYSTEM_PROMPT, context, now)
        return decision

    def _escalate(
        self, context: CustomerContext, text: str, intent: IntentResult, reason: str
    ) -> _Decision:
        previous = context.state
        self._store.update(
            context.phone,
            state=CustomerState.NEEDS_HUMAN,
            needs_human=True,
            escalation_reason=reason,
            sentiment=intent.sentiment,
        )
        logger.warning("Escalated to human: %s", reason)
        notification = AdminNotification(
            type=NotificationType.ESCALATION,
            message=f"Escalation needed: {reason}",
            customer_phone=context.phone,
            data={"reason": reason, "previous_state": previous.value, "text": text},
        )
        return _Decision(messages.ESCALATION, "escalation", [notification])

    def _resolve_pending_details(self, context: CustomerContext, text: str) -> None:
        """Merge screenshot-read details on a yes; discard them on anything else."""
        if not context.has_pending_device_details():
            return
        changes: dict = {"pending_mac_address": None, "pending_device_key": None}
        if is_affirmative(text):
            if context.pending_mac_address:
                changes["mac_address"] = context.pending_mac_address
            if context.pending_device_key:
                changes["device_key"] = context.pending_device_key
            logger.info("Customer confirmed screenshot details")
        else:
            logger.info("Screenshot details discarded")
        self._store.update(context.phone, **changes)

    def _cross_cutting(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> Optional[_Decision]:
        if context.state == CustomerState.NEEDS_HUMAN:
            return None
        if intent.intent == Intent.PRICING:
            return self._pricing(context)
        if intent.intent == Intent.TECHNICAL_ISSUE:
            return self._technical_issue(context, text)
        return None

    def _entry_prompt(
        self, context: CustomerContext, state: CustomerState, previous: CustomerState
    ) -> Optional[_Decision]:
        if state == CustomerState.AWAITING_DEVICE:
            if previous == CustomerState.NEW:
                return _Decision(messages.GREETING, "greeting")
            return _Decision(messages.DEVICE_QUESTION, "device_question")
        if state == CustomerState.AWAITING_MAC:
            return _Decision(messages.setup_instructions(context.device), "setup_instructions")
        if state == CustomerState.AWAITING_CONTENT_PREF:
            return self._content_question(context)
        if state == CustomerState.TRIAL_PENDING:
            return _Decision(messages.TRIAL_PENDING, "trial_request")
        return None

    # ------------------------------------------------------------------ #
    # State handlers
    # ------------------------------------------------------------------ #

    def _handle_new(self, context: CustomerContext, text: str, intent: IntentResult) -> _Decision:
        self._store.update(context.phone, state=CustomerState.AWAITING_DEVICE)
        return _Decision(messages.GREETING, "greeting")

    def _handle_awaiting_device(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        return _Decision(messages.DEVICE_QUESTION, "device_question")

    def _handle_awaiting_mac(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        if mentions_tivimate(text):
            self._store.update(
                context.phone,
                device=DeviceType.TIVIMATE,
                state=CustomerState.AWAITING_CONTENT_PREF,
            )
            return self._content_question(context)
        if looks_like_device_details(text):
            self._store.update(
                context.phone,
                mac_address=context.mac_address or text.strip(),
                state=CustomerState.AWAITING_CONTENT_PREF,
            )
            return self._content_question(context)
        return _Decision(messages.MAC_HELP, "mac_help")

    def _handle_awaiting_content_pref(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        # Anything said here counts as an answer; English is the default catalog.
        self._store.update(
            context.phone,
            content_preference=context.content_preference or ContentPreference.ENGLISH,
            state=CustomerState.TRIAL_PENDING,
        )
        return _Decision(messages.TRIAL_PENDING, "trial_request", [self._trial_request(context)])

    def _handle_trial_active(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        lower = text.lower()
        if any(kw in lower for kw in PRICING_KEYWORDS):
            return self._pricing(context)
        if intent.intent == Intent.PAYMENT or any(kw in lower for kw in SUBSCRIBE_KEYWORDS):
            self._store.update(context.phone, state=CustomerState.AWAITING_PAYMENT)
            return self._handle_payment_flow(context, text, intent)
        return self._handle_free_form(context, text, intent)

    def _handle_payment_flow(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        method = extract_payment_method(text)
        if method in (PaymentMethod.REVOLUT, PaymentMethod.PAYPAL):
            self._store.update(context.phone, payment_method=method)
            return _Decision(messages.payment_instructions(method), f"payment_instructions_{method.value}")

        plan = match_plan(text)
        if plan is not None:
            self._store.update(context.phone, plan=plan)

        if is_payment_confirmation(text):
            return self._payment_reported(context, text)

        return _Decision(messages.payment_options(context.plan), "payment_options")

    def _payment_reported(self, context: CustomerContext, text: str) -> _Decision:
        self._store.update(
            context.phone,
            state=CustomerState.PAYMENT_PENDING,
            payment_pending=True,
        )
        return _Decision(
            messages.PAYMENT_RECEIVED_ACK,
            "payment_received",
            [self._payment_notification(context, text)],
        )

    def _handle_payment_pending(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        return _Decision(
            messages.PAYMENT_PENDING_HOLD,
            "payment_pending_hold",
            [self._payment_notification(context, text)],
        )

    def _handle_free_form(
        self, context: CustomerContext, text: str, intent: IntentResult
    ) -> _Decision:
        return _Decision(None, "llm_reply")

    # ------------------------------------------------------------------ #
    # Shared replies and notifications
    # ------------------------------------------------------------------ #

    def _content_question(self, context: CustomerContext) -> _Decision:
        if context.device == DeviceType.TIVIMATE:
            return _Decision(messages.TIVIMATE_CONTENT_QUESTION, "content_question")
        return _Decision(messages.CONTENT_PREF_QUESTION, "content_question")

    def _pricing(self, context: CustomerContext) -> _Decision:
        self._store.update(context.phone, state=CustomerState.AWAITING_PAYMENT)
        return _Decision(messages.pricing_message(context.plan), "pricing")

    def _technical_issue(self, context: CustomerContext, text: str) -> _Decision:
        notification = AdminNotification(
            type=NotificationType.TECHNICAL_ISSUE,
            message="Technical issue reported",
            customer_phone=context.phone,
            data={
                "plan": context.plan.value if context.plan else None,
                "device": context.device.value if context.device else None,
                "text": text,
            },
        )
        return _Decision(messages.TECHNICAL_ISSUE, "technical_issue", [notification])

    def _trial_request(self, context: CustomerContext) -> AdminNotification:
        logger.info("Trial requested")
        return AdminNotification(
            type=NotificationType.TRIAL_REQUEST,
            message="New trial request",
            customer_phone=context.phone,
            data={
                "phone": context.phone,
                "device": context.device.value if context.device else None,
                "mac_address": context.mac_address,
                "device_key": context.device_key,
                "content_preference": (
                    context.content_preference.value if context.content_preference else None
                ),
                "wants_adult_content": context.wants_adult_content,
            },
        )

    def _payment_notification(self, context: CustomerContext, text: str) -> AdminNotification:
        return AdminNotification(
            type=NotificationType.PAYMENT_RECEIVED,
            message="Payment reported by customer",
            customer_phone=context.phone,
            data={
                "plan": context.plan.value if context.plan else None,
                "payment_method": context.payment_method.value if context.payment_method else None,
                "device": context.device.value if context.device else None,
                "snippet": truncate(text),
            },
        )

    # ------------------------------------------------------------------ #
    # Free-form generation
    # ------------------------------------------------------------------ #

    async def _model_history(self, phone: str, text: str) -> list[dict[str, str]]:
        """Recent turns for the model, preferring the channel's own history."""
        entries: Optional[list[dict[str, str]]] = None
        if self._history_provider is not None:
            try:
                entries = await self._history_provider.recent_messages(
                    phone, self._config.funnel.channel_history_limit
                )
            except Exception as e:
                logger.warning("Channel history unavailable, using local log: %s", e)
                entries = None

        if not entries:
            window = self._config.funnel.model_history_window
            entries = [
                {"role": m.role.value, "content": m.content}
                for m in self._history.recent(phone, window)
            ]

        if not entries or entries[-1].get("role") != MessageRole.USER.value or entries[-1].get("content") != text:
            entries = list(entries) + [{"role": MessageRole.USER.value, "content": text}]
        return alternate_roles(entries)

    async def _generate(self, phone: str, text: str, decision: _Decision) -> _Decision:
        conversation = await self._model_history(phone, text)
        try:
            reply = await self._llm.complete(
                decision.system_prompt,
                conversation,
                self._config.model.reply_max_tokens,
            )
        except LLMUnavailableError as e:
            logger.error("Reply generation failed: %s", e)
            return await self._generation_failed(phone, text, str(e), decision)

        if not reply:
            return await self._generation_failed(phone, text, "empty model reply", decision)
        decision.message = reply
        return decision

    async def _generation_failed(
        self, phone: str, text: str, error: str, decision: _Decision
    ) -> _Decision:
        async with self._store.lock(phone):
            context = self._store.get_or_create(phone)
            previous = context.state
            reason = f"AI error: {error}"
            self._store.update(
                phone,
                state=CustomerState.NEEDS_HUMAN,
                needs_human=True,
                escalation_reason=reason,
            )
        notification = AdminNotification(
            type=NotificationType.ESCALATION,
            message=reason,
            customer_phone=phone,
            data={"reason": reason, "previous_state": previous.value, "text": text},
        )
        return _Decision(
            messages.GENERATION_FAILURE,
            "generation_failed",
            decision.notifications + [notification],
        )

    # ------------------------------------------------------------------ #
    # Admin operations
    # ------------------------------------------------------------------ #

    async def activate_trial(self, phone: str, credentials: Credentials) -> EngineReply:
        """Start the trial with admin-issued credentials."""
        set_phone(phone)
        async with self._store.lock(phone):
            now = self._clock()
            creds = credentials.with_stream_url()
            context = self._store.update(
                phone,
                state=CustomerState.TRIAL_ACTIVE,
                trial_started_at=now,
                trial_expires_at=now + timedelta(hours=self._config.business.trial_hours),
                credentials=creds,
                follow_ups_sent=0,
                last_follow_up_type=None,
            )
            message = messages.trial_activation_message(creds, context.device)
            self._record(phone, MessageRole.ASSISTANT, message, MessageMetadata(
                triggered_action="admin_activate_trial",
            ))
            logger.info("Trial activated until %s", context.trial_expires_at.isoformat())
            return EngineReply(phone, message, context.state, action="admin_activate_trial")

    async def activate_subscription(
        self, phone: str, plan: PlanType, credentials: Credentials
    ) -> EngineReply:
        """Mark the customer as a paying subscriber on ``plan``."""
        set_phone(phone)
        async with self._store.lock(phone):
            now = self._clock()
            creds = credentials.with_stream_url()
            context = self._store.update(
                phone,
                state=CustomerState.ACTIVE_SUBSCRIBER,
                plan=plan,
                subscribed_at=now,
                expires_at=plan_expiry(plan, now),
                payment_pending=False,
                credentials=creds,
            )
            message = messages.subscription_welcome_message(plan, creds)
            self._record(phone, MessageRole.ASSISTANT, message, MessageMetadata(
                triggered_action="admin_activate_subscription",
            ))
            logger.info("Subscription %s active until %s", plan.value, context.expires_at.isoformat())
            return EngineReply(phone, message, context.state, action="admin_activate_subscription")

    async def expire_trial(self, phone: str) -> EngineReply:
        """Close an active trial and present the plans."""
        set_phone(phone)
        async with self._store.lock(phone):
            context = self._store.update(
                phone,
                state=CustomerState.TRIAL_EXPIRED,
                last_follow_up_type="trial_expired",
            )
            message = messages.render_followup_template("trial_expired", context.plan)
            self._record(phone, MessageRole.ASSISTANT, message, MessageMetadata(
                triggered_action="followup_trial_expired",
            ))
            return EngineReply(phone, message, context.state, action="followup_trial_expired")

    async def resolve_escalation(
        self, phone: str, state: Optional[CustomerState] = None
    ) -> CustomerContext:
        """Hand the customer back to the bot after a human took over."""
        set_phone(phone)
        async with self._store.lock(phone):
            context = self._store.get_or_create(phone)
            target = state
            if target is None:
                previous = context.previous_state
                target = previous if previous not in (None, CustomerState.NEEDS_HUMAN) else CustomerState.NEW
            logger.info("Escalation resolved, returning to %s", target.value)
            return self._store.update(
                phone,
                state=target,
                needs_human=False,
                escalation_reason=None,
            )

    async def record_outbound(self, phone: str, text: str, action: str) -> None:
        """Log a message sent outside the inbound path (manual or follow-up)."""
        async with self._store.lock(phone):
            self._store.get_or_create(phone)
            self._record(phone, MessageRole.ASSISTANT, text, MessageMetadata(triggered_action=action))

    async def mark_followup_sent(self, phone: str, followup_type: str) -> CustomerContext:
        async with self._store.lock(phone):
            context = self._store.get_or_create(phone)
            return self._store.update(
                phone,
                follow_ups_sent=context.follow_ups_sent + 1,
                last_follow_up_type=followup_type,
            )

    def get_context_view(self, phone: str) -> Optional[ContextView]:
        context = self._store.get(phone)
        if context is None:
            return None
        return ContextView(context, self._history.recent(phone, ADMIN_VIEW_HISTORY_LIMIT))

    # ------------------------------------------------------------------ #
    # Screenshots
    # ------------------------------------------------------------------ #

    async def handle_image(
        self, phone: str, image_bytes: bytes, mime_type: str, caption: str = ""
    ) -> EngineReply:
        """
        Handle a customer screenshot according to the funnel state.

        Before the trial the image is read for a MAC address or device key,
        which the customer must confirm. In the payment states it is a
        receipt. Elsewhere it gets a free-form reply.
        """
        set_phone(phone)
        snippet = " ".join(part for part in (SCREENSHOT_MARKER, caption.strip()) if part)
        async with self._store.lock(phone):
            state = self._store.get_or_create(phone).state

        if state in DEVICE_CAPTURE_STATES:
            return await self._read_device_screenshot(phone, image_bytes, mime_type, snippet)

        async with self._store.lock(phone):
            now = self._clock()
            context = self._store.update(phone, last_message_at=now)
            self._record(phone, MessageRole.USER, snippet, None)
            if context.state == CustomerState.PAYMENT_PENDING:
                decision = self._handle_payment_pending(context, snippet, IntentResult())
            elif context.state in RECEIPT_STATES:
                decision = self._payment_reported(context, snippet)
                logger.info("Payment screenshot received")
            else:
                decision = self._handle_free_form(context, snippet, IntentResult())
                decision.system_prompt = build_system_prompt(SALES_SYSTEM_PROMPT, context, now)
        return await self._finish(phone, snippet, decision)

    async def _read_device_screenshot(
        self, phone: str, image_bytes: bytes, mime_type: str, snippet: str
    ) -> EngineReply:
        text = await self._llm.extract_text_from_image(image_bytes, mime_type)
        mac, key = parse_vision_reading(text) if text else (None, None)

        async with self._store.lock(phone):
            now = self._clock()
            self._store.update(phone, last_message_at=now)
            self._record(phone, MessageRole.USER, snippet, None)
            if mac or key:
                context = self._store.update(
                    phone, pending_mac_address=mac, pending_device_key=key,
                )
                message, action = messages.vision_confirmation(mac, key), "vision_confirm"
                logger.info("Screenshot details pending confirmation")
            else:
                context = self._store.get_or_create(phone)
                message, action = messages.MAC_HELP, "mac_help"
                logger.info("No device details found in screenshot")
            self._record(phone, MessageRole.ASSISTANT, message, MessageMetadata(triggered_action=action))
            return EngineReply(phone, message, context.state, action=action)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _record(
        self, phone: str, role: MessageRole, content: str, metadata: Optional[MessageMetadata]
    ) -> None:
        self._history.add(phone, ConversationMessage(
            role=role, content=content, timestamp=self._clock(), metadata=metadata,
        ))

    async def _dispatch(
        self, notifications: list[AdminNotification], context: CustomerContext
    ) -> None:
        if self._notifier is None:
            return
        for notification in notifications:
            try:
                delivered = await self._notifier.notify_admin(notification, context)
            except Exception:
                logger.exception("Admin notification %s raised", notification.type.value)
                continue
            if not delivered:
                logger.warning("Admin notification %s not delivered", notification.type.value)

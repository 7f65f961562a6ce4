"""
Admin notification formatting and delivery.

The engine hands every notification to an ``AdminNotifier``. Delivery is
fire-and-forget from the engine's side: failures are logged and
reported through the boolean result, never retried here.
"""

import logging
from typing import Optional, Protocol

from salesbot.config import settings
from salesbot.schemas.conversation_schema import AdminNotification, NotificationType
from salesbot.schemas.customer_schema import CustomerContext
from salesbot.tools.channels import ChannelSender
from salesbot.tools.plans import format_plan_name

logger = logging.getLogger(__name__)


class AdminNotifier(Protocol):
    async def notify_admin(
        self, notification: AdminNotification, context: Optional[CustomerContext]
    ) -> bool: ...


def _value(value: object) -> str:
    if value is None:
        return "N/A"
    return getattr(value, "value", str(value))


def _format_trial_request(n: AdminNotification, ctx: Optional[CustomerContext]) -> str:
    lines = [
        "🆕 NEW TRIAL REQUEST",
        "",
        f"📞 Customer: {n.customer_phone}",
        f"📱 Device: {_value(ctx.device if ctx else None)}",
        f"📍 MAC Address: {_value(ctx.mac_address if ctx else None)}",
        f"🔑 Device Key: {_value(ctx.device_key if ctx else None)}",
        f"🌍 Content: {_value(ctx.content_preference if ctx else None)}",
    ]
    if ctx and ctx.wants_adult_content:
        lines.append("🔞 Adult content: YES")
    lines += ["", "Action: create the trial account and activate it with Username / Password / URL."]
    return "\n".join(lines)


def _format_payment(n: AdminNotification, ctx: Optional[CustomerContext]) -> str:
    plan = format_plan_name(ctx.plan) if ctx and ctx.plan else "Unknown"
    lines = [
        "💰 PAYMENT NOTIFICATION",
        "",
        f"📞 Customer: {n.customer_phone}",
        f"📦 Plan: {plan}",
        f"💳 Method: {_value(ctx.payment_method if ctx else None)}",
        f"📱 Device: {_value(ctx.device if ctx else None)}",
    ]
    snippet = n.data.get("snippet")
    if snippet:
        lines += ["", f'Customer wrote: "{snippet}"']
    lines += ["", "⚠️ Please verify payment and activate the subscription."]
    return "\n".join(lines)


def _format_technical_issue(n: AdminNotification, ctx: Optional[CustomerContext]) -> str:
    plan = format_plan_name(ctx.plan) if ctx and ctx.plan else "Trial"
    return "\n".join([
        "⚠️ TECHNICAL ISSUE",
        "",
        f"Customer: {n.customer_phone}",
        f"Plan: {plan}",
        f"Device: {_value(ctx.device if ctx else None)}",
        "",
        f'Issue: "{n.data.get("text", "")}"',
    ])


def _format_escalation(n: AdminNotification, ctx: Optional[CustomerContext]) -> str:
    return "\n".join([
        "🚨 ESCALATION NEEDED",
        "",
        f"Customer: {n.customer_phone}",
        f"State: {_value(n.data.get('previous_state') or (ctx.state if ctx else None))}",
        f"Reason: {n.data.get('reason', n.message)}",
        f'Last message: "{n.data.get("text", "")}"',
    ])


_FORMATTERS = {
    NotificationType.TRIAL_REQUEST: _format_trial_request,
    NotificationType.PAYMENT_RECEIVED: _format_payment,
    NotificationType.TECHNICAL_ISSUE: _format_technical_issue,
    NotificationType.ESCALATION: _format_escalation,
}


def format_notification(
    notification: AdminNotification, context: Optional[CustomerContext] = None
) -> str:
    """Render the admin-facing text for a notification."""
    formatter = _FORMATTERS.get(notification.type)
    if formatter is None:
        return notification.message
    return formatter(notification, context)


class ChannelAdminNotifier:
    """Sends formatted notifications to the admin's own WhatsApp number."""

    def __init__(self, sender: ChannelSender, admin_phone: Optional[str] = None) -> None:
        self._sender = sender
        self._admin_phone = admin_phone if admin_phone is not None else settings.business.admin_phone
        if not self._admin_phone:
            logger.warning("ADMIN_PHONE not set; admin notifications disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self._admin_phone)

    async def notify_admin(
        self, notification: AdminNotification, context: Optional[CustomerContext] = None
    ) -> bool:
        if not self._admin_phone:
            logger.warning("Notification %s dropped: no admin phone", notification.type.value)
            return False
        text = format_notification(notification, context)
        try:
            await self._sender.send_text(self._admin_phone, text)
        except Exception as e:
            logger.error("Admin notification %s failed: %s", notification.type.value, e)
            return False
        logger.info("Admin notification sent: %s", notification.type.value)
        return True

"""Dynamic prompt construction for context-aware reply generation."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from salesbot.config import settings
from salesbot.schemas.customer_schema import CustomerContext


@dataclass(frozen=True)
class RequiredField:
    """A piece of customer data the funnel must collect before a trial."""

    name: str
    display_name: str
    is_filled: Callable[[CustomerContext], bool]


REQUIRED_FIELDS: list[RequiredField] = [
    RequiredField(
        name="device",
        display_name="device type",
        is_filled=lambda ctx: ctx.device is not None,
    ),
    RequiredField(
        name="device_details",
        display_name="MAC address or device key",
        is_filled=lambda ctx: ctx.has_device_details(),
    ),
    RequiredField(
        name="content_preference",
        display_name="content preference",
        is_filled=lambda ctx: ctx.content_preference is not None,
    ),
]


def missing_fields(context: CustomerContext) -> list[str]:
    """Display names of required fields still unknown, in funnel order."""
    return [f.display_name for f in REQUIRED_FIELDS if not f.is_filled(context)]


def build_context_block(context: CustomerContext, now: datetime) -> str:
    """Describe the customer's current state and known fields for the model."""
    lines = ["--- CURRENT CUSTOMER CONTEXT ---", f"Conversation State: {context.state.value}"]
    if context.name:
        lines.append(f"Customer Name: {context.name}")
    if context.device:
        lines.append(f"Device: {context.device.value}")
    if context.content_preference:
        lines.append(f"Content Preference: {context.content_preference.value}")
    if context.plan:
        lines.append(f"Interested Plan: {context.plan.value}")
    if context.trial_started_at:
        elapsed = (now - context.trial_started_at).total_seconds() / 3600
        hours_left = max(0.0, settings.business.trial_hours - elapsed)
        lines.append(f"Trial: Active ({hours_left:.1f} hours remaining)")

    still_need = missing_fields(context)
    if still_need:
        lines.append(f"Still need: {', '.join(still_need)}")

    persona = settings.business.agent_persona
    lines.append(f"\nRespond naturally as {persona}. Keep it short and WhatsApp-friendly.")
    return "\n".join(lines)


def build_system_prompt(base_prompt: str, context: CustomerContext, now: datetime) -> str:
    return f"{base_prompt}\n\n{build_context_block(context, now)}"

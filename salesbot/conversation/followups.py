"""
Polling-based follow-up scheduling.

``due_followup`` is a pure function of a context snapshot and the current
time; nothing here sends messages or mutates contexts. The sweeper in
``conversation.dispatcher`` calls ``find_due`` periodically and performs
the sends.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from salesbot.config import settings
from salesbot.prompts.messages import render_followup_template
from salesbot.schemas.customer_schema import CustomerContext, CustomerState

logger = logging.getLogger(__name__)

_HOUR = 3600.0
_DAY = 24 * _HOUR


@dataclass(frozen=True)
class FollowUp:
    """A nudge due (or scheduled) for one customer."""
    type: str
    send_at: datetime


def _trial_followup(context: CustomerContext, now: datetime) -> Optional[FollowUp]:
    start = context.trial_started_at
    if start is None:
        return None
    elapsed = (now - start).total_seconds()
    trial_end = settings.business.trial_hours * _HOUR

    if elapsed < 23 * _HOUR and context.follow_ups_sent == 0:
        return FollowUp("trial_18h", start + timedelta(hours=18))
    if elapsed < trial_end and context.follow_ups_sent <= 1:
        return FollowUp("trial_23h", start + timedelta(hours=23))
    return None


def _ghoster_followup(context: CustomerContext, now: datetime) -> Optional[FollowUp]:
    if context.last_message_at is None:
        return None
    idle = (now - context.last_message_at).total_seconds()

    if idle >= 4 * _HOUR and context.follow_ups_sent == 0:
        return FollowUp("ghoster_4h", now)
    if idle >= 24 * _HOUR and context.follow_ups_sent == 1:
        return FollowUp("ghoster_nextday", now)
    return None


def _post_trial_followup(context: CustomerContext, now: datetime) -> Optional[FollowUp]:
    if context.trial_expires_at is None:
        return None
    since_expiry = (now - context.trial_expires_at).total_seconds()
    sent = context.follow_ups_sent

    if since_expiry >= 1 * _DAY and sent <= 2:
        return FollowUp("day1_followup", now)
    if since_expiry >= 3 * _DAY and sent <= 3:
        return FollowUp("day3_followup", now)
    if since_expiry >= 7 * _DAY and sent <= 4:
        return FollowUp("day7_final", now)
    return None


_RULES = {
    CustomerState.TRIAL_ACTIVE: _trial_followup,
    CustomerState.AWAITING_MAC: _ghoster_followup,
    CustomerState.TRIAL_EXPIRED: _post_trial_followup,
}


def due_followup(context: CustomerContext, now: datetime) -> Optional[FollowUp]:
    """Next follow-up for ``context``; ``send_at`` may still lie in the future."""
    rule = _RULES.get(context.state)
    return rule(context, now) if rule else None


def find_due(
    contexts: Iterable[CustomerContext], now: datetime
) -> list[tuple[CustomerContext, FollowUp]]:
    """Every context whose next follow-up is due at or before ``now``."""
    due: list[tuple[CustomerContext, FollowUp]] = []
    for context in contexts:
        followup = due_followup(context, now)
        if followup is not None and followup.send_at <= now:
            due.append((context, followup))
    if due:
        logger.info("%d follow-up(s) due", len(due))
    return due


def is_trial_overdue(context: CustomerContext, now: datetime) -> bool:
    """True for active trials whose expiry has passed."""
    return (
        context.state == CustomerState.TRIAL_ACTIVE
        and context.trial_expires_at is not None
        and context.trial_expires_at <= now
    )


def render_followup(followup_type: str, context: CustomerContext) -> Optional[str]:
    return render_followup_template(followup_type, context.plan)

"""
Funnel ordering and the automatic state-inference rule.

States only move forward through the funnel automatically. Once a
customer reaches an admin-owned state, nothing here may move them:
only explicit admin operations change state from there.

Usage:
    target = infer_state(context)
    if target is not None:
        store.update(context.phone, state=target)
"""

import logging
from typing import Optional

from salesbot.schemas.customer_schema import CustomerContext, CustomerState

logger = logging.getLogger(__name__)

FUNNEL_ORDER: list[CustomerState] = [
    CustomerState.NEW,
    CustomerState.AWAITING_DEVICE,
    CustomerState.AWAITING_MAC,
    CustomerState.AWAITING_CONTENT_PREF,
    CustomerState.TRIAL_PENDING,
    CustomerState.TRIAL_ACTIVE,
    CustomerState.TRIAL_EXPIRED,
    CustomerState.AWAITING_PAYMENT,
    CustomerState.PAYMENT_PENDING,
    CustomerState.ACTIVE_SUBSCRIBER,
]

_RANK: dict[CustomerState, int] = {state: i for i, state in enumerate(FUNNEL_ORDER)}

ADMIN_OWNED_STATES: frozenset[CustomerState] = frozenset({
    CustomerState.TRIAL_ACTIVE,
    CustomerState.TRIAL_EXPIRED,
    CustomerState.AWAITING_PAYMENT,
    CustomerState.PAYMENT_PENDING,
    CustomerState.ACTIVE_SUBSCRIBER,
    CustomerState.NEEDS_HUMAN,
})

# Reserved for manual admin use; no automatic rule enters or leaves it.
DORMANT_STATES: frozenset[CustomerState] = frozenset({CustomerState.CHURNED})


def funnel_rank(state: CustomerState) -> int:
    """Position in the funnel; states outside the funnel rank last."""
    return _RANK.get(state, len(FUNNEL_ORDER))


def is_auto_advance_allowed(state: CustomerState) -> bool:
    return state not in ADMIN_OWNED_STATES and state not in DORMANT_STATES


def _target_from_fields(context: CustomerContext) -> Optional[CustomerState]:
    has_device = context.device is not None
    has_details = context.has_device_details()

    if has_device and has_details and context.content_preference is not None:
        return CustomerState.TRIAL_PENDING
    if has_device and has_details:
        return CustomerState.AWAITING_CONTENT_PREF
    if has_device:
        return CustomerState.AWAITING_MAC
    if context.state == CustomerState.NEW:
        return CustomerState.AWAITING_DEVICE
    return None


def infer_state(context: CustomerContext) -> Optional[CustomerState]:
    """
    Derive the furthest funnel state the collected fields justify.

    Returns None when no forward move applies: the current state is
    admin-owned or dormant, or the fields do not justify a later state.
    """
    if not is_auto_advance_allowed(context.state):
        return None
    target = _target_from_fields(context)
    if target is None or funnel_rank(target) <= funnel_rank(context.state):
        return None
    logger.debug(
        "Auto-advance: %s -> %s", context.state.value, target.value,
    )
    return target

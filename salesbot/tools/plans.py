"""Subscription plan catalog with pricing, durations, and display names."""

import calendar
import logging
from datetime import datetime
from typing import Optional

from salesbot.errors import InvalidAdminInputError
from salesbot.schemas.customer_schema import PlanType

logger = logging.getLogger(__name__)

PLAN_CATALOG: dict[PlanType, dict] = {
    PlanType.MONTHLY: {
        "name": "Monthly Plan",
        "price_eur": 35,
        "duration_months": 1,
        "details": "No commitment",
    },
    PlanType.YEARLY: {
        "name": "Yearly Plan",
        "price_eur": 80,
        "duration_months": 14,  # 12 + 2 free
        "details": "12 months + 2 FREE months",
    },
    PlanType.TWO_YEARS: {
        "name": "2-Year Plan",
        "price_eur": 139,
        "duration_months": 28,  # 24 + 4 free
        "details": "24 months + 4 FREE months",
    },
    PlanType.THREE_YEARS: {
        "name": "3-Year Plan",
        "price_eur": 180,
        "duration_months": 36,
        "details": "Best mid-term value",
    },
    PlanType.LIFETIME: {
        "name": "Lifetime Plan",
        "price_eur": 250,
        "duration_months": 72,
        "details": "6 years guaranteed, pay 150 now + 100 next month",
    },
}

# Checked in order; the generic "year" alias must stay after the multi-year ones.
PLAN_ALIASES: list[tuple[str, PlanType]] = [
    ("lifetime", PlanType.LIFETIME),
    ("2 year", PlanType.TWO_YEARS),
    ("two year", PlanType.TWO_YEARS),
    ("3 year", PlanType.THREE_YEARS),
    ("three year", PlanType.THREE_YEARS),
    ("year", PlanType.YEARLY),
    ("month", PlanType.MONTHLY),
]


def match_plan(text: str) -> Optional[PlanType]:
    """Match free text to a plan. Returns None if no plan is mentioned."""
    lower = text.lower()
    for alias, plan in PLAN_ALIASES:
        if alias in lower:
            return plan
    return None


def format_plan_name(plan: PlanType) -> str:
    return PLAN_CATALOG[plan]["name"]


def _add_months(start: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day is clamped to the target month's end."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def plan_expiry(plan: PlanType, start: datetime) -> datetime:
    """Subscription end for a plan bought at ``start``."""
    return _add_months(start, PLAN_CATALOG[plan]["duration_months"])


def validate_plan(name: str) -> PlanType:
    """Parse an admin-supplied plan name, rejecting anything unknown."""
    try:
        return PlanType((name or "").strip().lower())
    except ValueError:
        valid = [p.value for p in PlanType]
        raise InvalidAdminInputError(
            f"Unknown plan {name!r}. Valid plans: {valid}"
        ) from None

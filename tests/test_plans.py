"""Tests for the plan catalog and subscription expiry arithmetic."""

from datetime import datetime, timezone

import pytest

from salesbot.errors import InvalidAdminInputError
from salesbot.schemas.customer_schema import PlanType
from salesbot.tools.plans import (
    PLAN_CATALOG,
    format_plan_name,
    match_plan,
    plan_expiry,
    validate_plan,
)

BOUGHT = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


class TestCatalog:
    def test_every_plan_priced(self):
        assert set(PLAN_CATALOG) == set(PlanType)
        assert PLAN_CATALOG[PlanType.LIFETIME]["price_eur"] == 250

    def test_display_name(self):
        assert format_plan_name(PlanType.TWO_YEARS) == "2-Year Plan"


class TestMatchPlan:
    @pytest.mark.parametrize("text,expected", [
        ("the lifetime one", PlanType.LIFETIME),
        ("2 years please", PlanType.TWO_YEARS),
        ("three year deal", PlanType.THREE_YEARS),
        ("yearly", PlanType.YEARLY),
        ("just a month", PlanType.MONTHLY),
    ])
    def test_aliases(self, text, expected):
        assert match_plan(text) == expected

    def test_no_plan(self):
        assert match_plan("how do I pay") is None


class TestPlanExpiry:
    def test_yearly_is_fourteen_months(self):
        assert plan_expiry(PlanType.YEARLY, BOUGHT) == datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)

    def test_lifetime_is_six_years(self):
        assert plan_expiry(PlanType.LIFETIME, BOUGHT) == datetime(2030, 1, 15, 9, 30, tzinfo=timezone.utc)

    def test_two_years_is_twenty_eight_months(self):
        assert plan_expiry(PlanType.TWO_YEARS, BOUGHT) == datetime(2026, 5, 15, 9, 30, tzinfo=timezone.utc)

    def test_month_end_is_clamped(self):
        start = datetime(2024, 1, 31, tzinfo=timezone.utc)
        assert plan_expiry(PlanType.MONTHLY, start) == datetime(2024, 2, 29, tzinfo=timezone.utc)


class TestValidatePlan:
    def test_valid(self):
        assert validate_plan(" Lifetime ") == PlanType.LIFETIME

    def test_invalid(self):
        with pytest.raises(InvalidAdminInputError, match="weekly"):
            validate_plan("weekly")

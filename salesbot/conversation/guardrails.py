"""
Escalation guardrail: decides when a live human must take over.

Three independent triggers, checked before any funnel logic runs:
an explicit request for a human, frustrated sentiment, or an
escalation keyword in the raw text. The keyword trigger is muted for
customers who already ignored three or more post-trial follow-ups.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from salesbot.schemas.customer_schema import CustomerContext, CustomerState, Sentiment
from salesbot.schemas.intent_schema import Intent, IntentResult

logger = logging.getLogger(__name__)

GHOSTED_FOLLOW_UP_THRESHOLD = 3


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None
    severity: str = "warning"  # "warning" | "block" | "escalate"


class EscalationGuardrail:
    """Detects conditions requiring escalation to a human operator."""

    ESCALATION_KEYWORDS = [
        "speak to someone", "real person", "human",
        "manager", "supervisor", "complaint",
        "refund", "scam", "fraud",
        "not working for days", "still not fixed",
    ]

    def _keyword_path_muted(self, context: CustomerContext) -> bool:
        return (
            context.state == CustomerState.TRIAL_EXPIRED
            and context.follow_ups_sent >= GHOSTED_FOLLOW_UP_THRESHOLD
        )

    def check_escalation_needed(
        self, context: CustomerContext, user_message: str, intent: IntentResult
    ) -> GuardrailResult:
        if intent.intent == Intent.HUMAN_REQUEST:
            logger.info("Customer requested a human")
            return GuardrailResult(
                passed=False,
                violation_type="human_request",
                message="Requested human",
                severity="escalate",
            )

        if intent.sentiment == Sentiment.FRUSTRATED:
            logger.info("Frustrated sentiment detected")
            return GuardrailResult(
                passed=False,
                violation_type="frustration",
                message="Detected frustration",
                severity="escalate",
            )

        if self._keyword_path_muted(context):
            return GuardrailResult(passed=True)

        lower = user_message.lower()
        for keyword in self.ESCALATION_KEYWORDS:
            if keyword in lower:
                logger.info("Escalation keyword detected: '%s'", keyword)
                return GuardrailResult(
                    passed=False,
                    violation_type="escalation_keyword",
                    message=f"Escalation keyword: '{keyword}'",
                    severity="escalate",
                )

        return GuardrailResult(passed=True)

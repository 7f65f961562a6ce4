"""Tests for the escalation guardrail."""

from salesbot.conversation.guardrails import EscalationGuardrail
from salesbot.schemas.customer_schema import CustomerState, Sentiment
from salesbot.schemas.intent_schema import Intent, IntentResult
from tests.conftest import make_context


class TestEscalationGuardrail:
    def setup_method(self):
        self.guard = EscalationGuardrail()
        self.ctx = make_context(state=CustomerState.AWAITING_MAC)

    def test_normal_message_passes(self):
        result = self.guard.check_escalation_needed(self.ctx, "here is my mac", IntentResult())
        assert result.passed

    def test_human_request_intent(self):
        intent = IntentResult(intent=Intent.HUMAN_REQUEST)
        result = self.guard.check_escalation_needed(self.ctx, "can I talk to Tom", intent)
        assert not result.passed
        assert result.violation_type == "human_request"
        assert result.severity == "escalate"

    def test_frustrated_sentiment(self):
        intent = IntentResult(sentiment=Sentiment.FRUSTRATED)
        result = self.guard.check_escalation_needed(self.ctx, "ugh", intent)
        assert not result.passed
        assert result.violation_type == "frustration"

    def test_keyword_refund(self):
        result = self.guard.check_escalation_needed(
            self.ctx, "This is a scam, I want a refund", IntentResult()
        )
        assert not result.passed
        assert result.violation_type == "escalation_keyword"
        assert "refund" in result.message

    def test_keyword_case_insensitive(self):
        result = self.guard.check_escalation_needed(self.ctx, "Let me speak to your MANAGER", IntentResult())
        assert not result.passed


class TestGhostedSuppression:
    def setup_method(self):
        self.guard = EscalationGuardrail()

    def test_keywords_muted_after_three_post_trial_followups(self):
        ctx = make_context(state=CustomerState.TRIAL_EXPIRED, follow_ups_sent=3)
        result = self.guard.check_escalation_needed(ctx, "refund please", IntentResult())
        assert result.passed

    def test_keywords_live_below_threshold(self):
        ctx = make_context(state=CustomerState.TRIAL_EXPIRED, follow_ups_sent=2)
        result = self.guard.check_escalation_needed(ctx, "refund please", IntentResult())
        assert not result.passed

    def test_frustration_still_escalates_when_muted(self):
        ctx = make_context(state=CustomerState.TRIAL_EXPIRED, follow_ups_sent=5)
        intent = IntentResult(sentiment=Sentiment.FRUSTRATED)
        assert not self.guard.check_escalation_needed(ctx, "refund", intent).passed

    def test_human_request_still_escalates_when_muted(self):
        ctx = make_context(state=CustomerState.TRIAL_EXPIRED, follow_ups_sent=5)
        intent = IntentResult(intent=Intent.HUMAN_REQUEST)
        assert not self.guard.check_escalation_needed(ctx, "hello", intent).passed

"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_customer_schema(self):
        from salesbot.schemas.customer_schema import CustomerContext, CustomerState, PlanType
        assert CustomerState.NEEDS_HUMAN == "needs_human"
        assert PlanType.TWO_YEARS == "2years"
        assert "sentiment" in CustomerContext.field_names()

    def test_import_intent_schema(self):
        from salesbot.schemas.intent_schema import Intent, IntentResult
        assert IntentResult().intent == Intent.OTHER


class TestConversationImports:
    def test_package_reexports(self):
        from salesbot.conversation import (
            AdminActions,
            ConversationEngine,
            ContextStore,
            FollowUpSweeper,
            InboundDispatcher,
            MessageHistory,
            infer_state,
        )
        assert ConversationEngine is not None
        assert callable(infer_state)

    def test_evaluation_reexports(self):
        from salesbot.evaluation import FunnelMetricsCalculator
        assert FunnelMetricsCalculator().calculate([]).total == 0


class TestToolImports:
    def test_llm_client_unconfigured(self):
        from salesbot.config import ModelConfig
        from salesbot.tools.llm import OpenAIChatClient

        client = OpenAIChatClient(ModelConfig(api_key=""))
        assert not client.is_configured

    def test_prompts(self):
        from salesbot.prompts.system_prompts import SALES_SYSTEM_PROMPT, build_intent_prompt
        assert SALES_SYSTEM_PROMPT
        assert "are you open?" in build_intent_prompt("are you open?")


class TestEntryPoints:
    def test_build_services(self):
        from main import build_services
        from tests.conftest import FakeChannel, FakeLLM

        services = build_services(FakeChannel(), llm=FakeLLM(), admin_phone="+1")
        assert services.dispatcher is not None
        assert services.sweeper is not None

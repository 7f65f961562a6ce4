"""Tests for intent parsing and the model-backed classifier."""

import pytest

from salesbot.errors import LLMUnavailableError
from salesbot.schemas.customer_schema import DeviceType, Sentiment
from salesbot.schemas.intent_schema import Intent, IntentResult
from salesbot.tools.intent import IntentClassifier, parse_first_json_object
from tests.conftest import FakeLLM


class TestParseFirstJsonObject:
    def test_plain_object(self):
        assert parse_first_json_object('{"intent": "greeting"}') == {"intent": "greeting"}

    def test_object_inside_prose(self):
        raw = 'Here you go:\n```json\n{"intent": "pricing", "entities": {"device": null}}\n```'
        assert parse_first_json_object(raw) == {"intent": "pricing", "entities": {"device": None}}

    def test_skips_broken_braces(self):
        assert parse_first_json_object('oops { not json } then {"a": 1}') == {"a": 1}

    def test_none_without_object(self):
        assert parse_first_json_object("no json here") is None


class TestIntentResult:
    def test_unknown_labels_coerced(self):
        result = IntentResult.model_validate({
            "intent": "buy_now",
            "sentiment": "ecstatic",
            "confidence": 1.7,
            "entities": {"device": "N/A", "plan_interest": "forever"},
        })
        assert result.intent == Intent.OTHER
        assert result.sentiment == Sentiment.NEUTRAL
        assert result.confidence == 1.0
        assert result.entities.device is None
        assert result.entities.plan_interest is None

    def test_null_entities(self):
        assert IntentResult.model_validate({"entities": None}).entities.device is None

    def test_fallback(self):
        result = IntentResult.fallback(0.5)
        assert result.intent == Intent.OTHER
        assert result.confidence == 0.5
        assert not result.needs_human


class TestIntentClassifier:
    @pytest.mark.asyncio
    async def test_parses_model_json(self):
        llm = FakeLLM(reply=(
            'Sure! {"intent": "device_info", "confidence": 0.92, '
            '"entities": {"device": "Firestick", "mac_address": "none"}, '
            '"sentiment": "positive", "needs_human": false}'
        ))
        result = await IntentClassifier(llm).detect_intent("I got a firestick")
        assert result.intent == Intent.DEVICE_INFO
        assert result.confidence == pytest.approx(0.92)
        assert result.entities.device == DeviceType.FIRESTICK
        assert result.entities.mac_address is None
        assert result.sentiment == Sentiment.POSITIVE

    @pytest.mark.asyncio
    async def test_prompt_contains_message(self):
        llm = FakeLLM(reply='{"intent": "greeting"}')
        await IntentClassifier(llm).detect_intent("hello from Cork")
        call = llm.calls[0]
        assert call["system_prompt"] is None
        assert "hello from Cork" in call["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_unconfigured_returns_zero_confidence(self):
        llm = FakeLLM(configured=False)
        result = await IntentClassifier(llm).detect_intent("hi")
        assert result.intent == Intent.OTHER
        assert result.confidence == 0.0
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_model_error_returns_zero_confidence(self):
        llm = FakeLLM(error=LLMUnavailableError("timeout"))
        result = await IntentClassifier(llm).detect_intent("hi")
        assert result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_no_json_returns_half_confidence(self):
        result = await IntentClassifier(FakeLLM(reply="I think it's a greeting")).detect_intent("hi")
        assert result.intent == Intent.OTHER
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_invalid_field_returns_half_confidence(self):
        llm = FakeLLM(reply='{"intent": "greeting", "needs_human": "perhaps"}')
        result = await IntentClassifier(llm).detect_intent("hi")
        assert result.intent == Intent.OTHER
        assert result.confidence == 0.5

"""Intent classification via the hosted language model. Never raises."""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from salesbot.config import settings
from salesbot.errors import LLMUnavailableError
from salesbot.prompts.system_prompts import build_intent_prompt
from salesbot.schemas.intent_schema import IntentResult
from salesbot.tools.llm import LLMClient

logger = logging.getLogger(__name__)

PARSE_FAILURE_CONFIDENCE = 0.5


def parse_first_json_object(text: str) -> Optional[dict[str, Any]]:
    """Decode the first JSON object embedded in ``text``, ignoring prose around it."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


class IntentClassifier:
    """Turns free text into an IntentResult using a fixed instruction template."""

    def __init__(self, llm: LLMClient, max_tokens: Optional[int] = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens or settings.model.intent_max_tokens

    async def detect_intent(self, text: str) -> IntentResult:
        if not self._llm.is_configured:
            return IntentResult.fallback(0.0)

        prompt = build_intent_prompt(text)
        try:
            raw = await self._llm.complete(
                None, [{"role": "user", "content": prompt}], self._max_tokens
            )
        except LLMUnavailableError as e:
            logger.error("Intent detection failed: %s", e)
            return IntentResult.fallback(0.0)

        data = parse_first_json_object(raw)
        if data is None:
            logger.warning("Intent response had no JSON object")
            return IntentResult.fallback(PARSE_FAILURE_CONFIDENCE)
        try:
            return IntentResult.model_validate(data)
        except ValidationError as e:
            logger.warning("Intent response failed validation: %s", e)
            return IntentResult.fallback(PARSE_FAILURE_CONFIDENCE)

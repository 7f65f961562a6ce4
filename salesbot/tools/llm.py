"""
Hosted language model client.

``OpenAIChatClient`` wraps ``openai.AsyncOpenAI`` behind the two calls the
engine needs: a chat completion and a screenshot text read. Every network
call carries the configured timeout.
"""

import base64
import logging
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from salesbot.config import ModelConfig, settings
from salesbot.errors import LLMUnavailableError
from salesbot.prompts.system_prompts import VISION_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    """Contract the engine and classifier depend on."""

    @property
    def is_configured(self) -> bool: ...

    async def complete(
        self, system_prompt: Optional[str], messages: list[dict[str, str]], max_tokens: int
    ) -> str: ...

    async def extract_text_from_image(self, image_bytes: bytes, mime_type: str) -> Optional[str]: ...


class OpenAIChatClient:
    """Chat completions against the OpenAI API."""

    def __init__(self, config: Optional[ModelConfig] = None) -> None:
        self._config = config or settings.model
        self._client: Optional[AsyncOpenAI] = None
        if self._config.api_key:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                timeout=self._config.request_timeout_sec,
                max_retries=1,
            )
            logger.info("LLM client initialized with model %s", self._config.llm_model)
        else:
            logger.warning("OPENAI_API_KEY not set; language model disabled")

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete(
        self, system_prompt: Optional[str], messages: list[dict[str, str]], max_tokens: int
    ) -> str:
        """
        Send a conversation to the model and return its text.

        Raises:
            LLMUnavailableError: If the client is unconfigured or the call fails.
        """
        if self._client is None:
            raise LLMUnavailableError("Language model not configured")

        payload: list[dict[str, str]] = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        payload.extend(messages)

        try:
            response = await self._client.chat.completions.create(
                model=self._config.llm_model,
                messages=payload,
                max_tokens=max_tokens,
                temperature=self._config.llm_temperature,
            )
        except openai.OpenAIError as e:
            logger.error("LLM completion failed: %s", e)
            raise LLMUnavailableError(str(e)) from e

        return (response.choices[0].message.content or "").strip()

    async def extract_text_from_image(self, image_bytes: bytes, mime_type: str) -> Optional[str]:
        """Read device details off a screenshot. None on any failure."""
        if self._client is None:
            return None

        encoded = base64.b64encode(image_bytes).decode("ascii")
        try:
            response = await self._client.chat.completions.create(
                model=self._config.vision_model,
                max_tokens=self._config.intent_max_tokens,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_EXTRACTION_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
                    ],
                }],
            )
        except openai.OpenAIError as e:
            logger.error("Image extraction failed: %s", e)
            return None

        text = (response.choices[0].message.content or "").strip()
        return text or None

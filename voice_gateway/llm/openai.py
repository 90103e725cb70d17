"""OpenAI response generator tuned for short voice replies."""

import time
from typing import Optional, Sequence

import structlog
from openai import AsyncOpenAI, OpenAIError

from voice_gateway.config import Settings, get_settings
from voice_gateway.errors import ResponseGenerationError
from voice_gateway.llm.base import GenerationParams, ResponseGenerator
from voice_gateway.models import ChatMessage

logger = structlog.get_logger()

# Sampling knobs for spoken replies.
TOP_P = 0.9
FREQUENCY_PENALTY = 0.3
PRESENCE_PENALTY = 0.1


class OpenAIResponseGenerator(ResponseGenerator):
    """
    OpenAI chat completions adapter.

    Sends the system prompt plus the most recent `llm_history_window`
    messages and returns the complete reply text.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.openai_api_key
        self.history_window = self.settings.llm_history_window

        self._client = client
        self.logger = logger.bind(adapter="openai")

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key or None,
                timeout=self.settings.openai_timeout,
            )
        return self._client

    def build_messages(
        self,
        system_prompt: str,
        history: Sequence[ChatMessage],
    ) -> list[dict]:
        """Convert history to OpenAI format, keeping only the recent window."""
        recent = list(history)
        if self.history_window > 0:
            recent = recent[-self.history_window:]
        return [{"role": "system", "content": system_prompt}] + [
            msg.to_openai() for msg in recent
        ]

    async def generate(
        self,
        system_prompt: str,
        history: Sequence[ChatMessage],
        params: GenerationParams,
    ) -> str:
        start_time = time.perf_counter()

        try:
            response = await self._get_client().chat.completions.create(
                model=params.model,
                messages=self.build_messages(system_prompt, history),
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                top_p=TOP_P,
                frequency_penalty=FREQUENCY_PENALTY,
                presence_penalty=PRESENCE_PENALTY,
                stream=False,
            )
        except OpenAIError as e:
            self.logger.error("OpenAI API error", error=str(e))
            raise ResponseGenerationError(f"AI generation failed: {e}") from e

        if not response.choices:
            raise ResponseGenerationError("AI generation failed: no choices returned")

        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise ResponseGenerationError("AI generation failed: empty completion")

        self.logger.info(
            "Generated response",
            model=params.model,
            tokens=response.usage.total_tokens if response.usage else 0,
            latency_ms=round((time.perf_counter() - start_time) * 1000, 1),
            text_length=len(text),
        )
        return text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

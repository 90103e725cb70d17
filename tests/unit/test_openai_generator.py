"""Unit tests for the OpenAI response generator."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from voice_gateway.config import Settings
from voice_gateway.errors import ResponseGenerationError
from voice_gateway.llm.base import GenerationParams
from voice_gateway.llm.openai import OpenAIResponseGenerator
from voice_gateway.models import AgentConfig, ChatMessage, Role


def completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=42),
    )


def make_generator(settings, create) -> OpenAIResponseGenerator:
    client = MagicMock()
    client.chat.completions.create = create
    return OpenAIResponseGenerator(settings=settings, client=client)


class TestOpenAIResponseGenerator:
    """Tests for response generation."""

    @pytest.mark.asyncio
    async def test_generate_sends_prompt_history_and_params(self, settings):
        """Test the request carries the system prompt and sampling knobs."""
        create = AsyncMock(return_value=completion("  Happy to help!  "))
        generator = make_generator(settings, create)
        history = [ChatMessage(Role.USER, "Can you help me?")]

        reply = await generator.generate(
            "Be brief.",
            history,
            GenerationParams(model="gpt-4o-mini", temperature=0.5, max_tokens=60),
        )

        assert reply == "Happy to help!"
        kwargs = create.await_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Can you help me?"},
        ]
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 60
        assert kwargs["top_p"] == 0.9
        assert kwargs["frequency_penalty"] == 0.3
        assert kwargs["presence_penalty"] == 0.1
        assert kwargs["stream"] is False

    @pytest.mark.asyncio
    async def test_history_window(self):
        """Test only the most recent messages are sent."""
        settings = Settings(_env_file=None, llm_history_window=2)
        create = AsyncMock(return_value=completion("ok"))
        generator = make_generator(settings, create)
        history = [ChatMessage(Role.USER, str(i)) for i in range(5)]

        await generator.generate("sys", history, GenerationParams())

        messages = create.await_args.kwargs["messages"]
        assert [m["content"] for m in messages] == ["sys", "3", "4"]

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, settings):
        """Test SDK errors become ResponseGenerationError."""
        generator = make_generator(settings, AsyncMock(side_effect=OpenAIError("rate limited")))

        with pytest.raises(ResponseGenerationError, match="AI generation failed"):
            await generator.generate("sys", [], GenerationParams())

    @pytest.mark.asyncio
    async def test_empty_completion_rejected(self, settings):
        """Test an empty completion is treated as a failure."""
        generator = make_generator(settings, AsyncMock(return_value=completion(None)))

        with pytest.raises(ResponseGenerationError):
            await generator.generate("sys", [], GenerationParams())


class TestGenerationParams:
    """Tests for parameter defaults."""

    def test_from_agent(self):
        """Test params come from the agent config."""
        agent = AgentConfig(id="a", model="gpt-4o", temperature=0.2, maxTokens=80)
        params = GenerationParams.from_agent(agent)

        assert params == GenerationParams(model="gpt-4o", temperature=0.2, max_tokens=80)

    def test_defaults(self):
        """Test voice-friendly defaults."""
        params = GenerationParams.from_agent(AgentConfig(id="a"))

        assert params.model == "gpt-4o-mini"
        assert params.temperature == 0.7
        assert params.max_tokens == 60

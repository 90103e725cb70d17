"""Base response generator interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from voice_gateway.models import AgentConfig, ChatMessage


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters for one completion."""

    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 60

    @classmethod
    def from_agent(cls, agent: AgentConfig) -> "GenerationParams":
        return cls(
            model=agent.model,
            temperature=agent.temperature,
            max_tokens=agent.max_tokens,
        )


class ResponseGenerator(ABC):
    """Single-shot (non-streaming) response generation."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get adapter name."""
        pass

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        history: Sequence[ChatMessage],
        params: GenerationParams,
    ) -> str:
        """
        Generate one complete reply.

        Args:
            system_prompt: Instructions sent ahead of the history
            history: Conversation so far, oldest first
            params: Model and sampling parameters

        Returns:
            The reply text, never empty

        Raises:
            ResponseGenerationError: On any provider failure
        """
        pass

    async def close(self) -> None:
        """Clean up resources."""
        pass

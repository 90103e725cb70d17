"""Persistence gateway interface."""

from abc import ABC, abstractmethod
from typing import Optional

from voice_gateway.models import AgentConfig, Role


class PersistenceGateway(ABC):
    """
    Agent lookup and conversation storage.

    Implementations log failures and return None or nothing; errors never
    propagate into a live conversation.
    """

    @abstractmethod
    async def resolve_agent(self, agent_id: str) -> Optional[AgentConfig]:
        """Load an agent's configuration."""
        pass

    @abstractmethod
    async def resolve_agent_by_call_id(self, call_id: str) -> Optional[str]:
        """Find the agent assigned to an external call."""
        pass

    @abstractmethod
    async def append_message(self, conversation_ref: str, role: Role, text: str) -> None:
        """Store one conversation message."""
        pass

    async def close(self) -> None:
        """Release held connections."""
        pass

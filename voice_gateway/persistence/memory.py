"""In-memory persistence gateway for development and tests."""

from typing import Optional

import structlog

from voice_gateway.models import AgentConfig, ChatMessage, Role
from voice_gateway.persistence.base import PersistenceGateway

logger = structlog.get_logger()


class InMemoryPersistenceGateway(PersistenceGateway):
    """Keeps agents, call assignments and messages in dicts."""

    def __init__(
        self,
        agents: Optional[dict[str, AgentConfig]] = None,
        call_agents: Optional[dict[str, str]] = None,
    ) -> None:
        self.agents: dict[str, AgentConfig] = dict(agents or {})
        self.call_agents: dict[str, str] = dict(call_agents or {})
        self.messages: dict[str, list[ChatMessage]] = {}
        self.logger = logger.bind(component="persistence", backend="memory")

    def add_agent(self, agent: AgentConfig) -> None:
        self.agents[agent.id] = agent

    def assign_call(self, call_id: str, agent_id: str) -> None:
        self.call_agents[call_id] = agent_id

    async def resolve_agent(self, agent_id: str) -> Optional[AgentConfig]:
        agent = self.agents.get(agent_id)
        if agent is None:
            self.logger.warning("Agent not found", agent_id=agent_id)
        return agent

    async def resolve_agent_by_call_id(self, call_id: str) -> Optional[str]:
        return self.call_agents.get(call_id)

    async def append_message(self, conversation_ref: str, role: Role, text: str) -> None:
        self.messages.setdefault(conversation_ref, []).append(ChatMessage(role, text))

"""Persistence gateway backed by the platform REST API."""

from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from voice_gateway.config import Settings, get_settings
from voice_gateway.models import AgentConfig, Role
from voice_gateway.persistence.base import PersistenceGateway

logger = structlog.get_logger()


class HttpPersistenceGateway(PersistenceGateway):
    """Talks to the platform API over httpx."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self.logger = logger.bind(component="persistence", backend="http")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {}
            if self.settings.platform_api_key:
                headers["X-API-Key"] = self.settings.platform_api_key
            self._client = httpx.AsyncClient(
                base_url=self.settings.platform_api_url,
                headers=headers,
                timeout=self.settings.platform_api_timeout,
            )
        return self._client

    async def resolve_agent(self, agent_id: str) -> Optional[AgentConfig]:
        client = await self._get_client()
        try:
            response = await client.get(f"/api/v1/agents/{agent_id}")
        except httpx.HTTPError as e:
            self.logger.error("Error getting agent config", agent_id=agent_id, error=str(e))
            return None

        if response.status_code != 200:
            self.logger.warning(
                "Failed to get agent config",
                agent_id=agent_id,
                status=response.status_code,
            )
            return None

        try:
            data = response.json()
        except ValueError as e:
            self.logger.warning("Invalid agent config", agent_id=agent_id, error=str(e))
            return None
        if not isinstance(data, dict):
            self.logger.warning(
                "Unexpected agent payload", agent_id=agent_id, payload_type=type(data).__name__
            )
            return None

        if "id" not in data:
            data["id"] = agent_id
        try:
            return AgentConfig.model_validate(data)
        except ValidationError as e:
            self.logger.warning("Invalid agent config", agent_id=agent_id, error=str(e))
            return None

    async def resolve_agent_by_call_id(self, call_id: str) -> Optional[str]:
        client = await self._get_client()
        try:
            response = await client.get(f"/api/v1/calls/{call_id}")
        except httpx.HTTPError as e:
            self.logger.error("Error looking up call", call_id=call_id, error=str(e))
            return None

        if response.status_code != 200:
            self.logger.debug("Call not found", call_id=call_id, status=response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            self.logger.warning("Invalid call payload", call_id=call_id)
            return None
        if not isinstance(data, dict):
            self.logger.warning(
                "Unexpected call payload", call_id=call_id, payload_type=type(data).__name__
            )
            return None

        agent_id = data.get("agent_id") or data.get("agentId")
        return str(agent_id) if agent_id else None

    async def append_message(self, conversation_ref: str, role: Role, text: str) -> None:
        client = await self._get_client()
        try:
            response = await client.post(
                f"/api/v1/calls/{conversation_ref}/messages",
                json={"role": role.value, "content": text},
            )
            if response.status_code >= 400:
                self.logger.warning(
                    "Failed to save message",
                    call_id=conversation_ref,
                    status=response.status_code,
                )
        except httpx.HTTPError as e:
            self.logger.warning("Error saving message", call_id=conversation_ref, error=str(e))

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

"""Shared data models for the voice gateway."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionSource(str, Enum):
    """Where a connection's audio comes from."""

    TELEPHONY = "telephony"
    BROWSER = "browser"


class SessionState(str, Enum):
    """Session lifecycle state. Only ever moves forward."""

    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class Role(str, Enum):
    """Conversation message role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation message."""

    role: Role
    content: str

    def to_openai(self) -> dict:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Utterance:
    """One transcript event, consumed by the utterance gate and discarded."""

    text: str
    is_final: bool
    confidence: Optional[float] = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())


# =============================================================================
# Agent configuration
# =============================================================================


class _AgentModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )


class VoiceSettings(_AgentModel):
    """Voice settings for streaming synthesis."""

    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.75, ge=0.0, le=1.0, alias="similarityBoost")


class FunctionParameter(_AgentModel):
    """A parameter of an agent function."""

    name: str
    type: str = "string"
    required: bool = False


class AgentFunction(_AgentModel):
    """A function the agent can ask to be called."""

    name: str
    description: str = ""
    parameters: tuple[FunctionParameter, ...] = ()


class AgentConfig(_AgentModel):
    """
    Agent configuration, resolved once per session and never mutated.

    Accepts both snake_case and the camelCase keys the platform API returns.
    """

    id: str
    name: str = ""
    system_prompt: str = Field(
        default="You are a helpful AI assistant.",
        alias="systemPrompt",
    )
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=60, ge=1, alias="maxTokens")
    voice: VoiceSettings = Field(default_factory=VoiceSettings, alias="voiceSettings")
    functions: tuple[AgentFunction, ...] = ()


# =============================================================================
# Synthesis
# =============================================================================


@dataclass(frozen=True)
class TTSRequest:
    """Request to synthesize one outgoing utterance."""

    text: str
    voice_id: str
    stability: float = 0.5
    similarity_boost: float = 0.75
    latency_hint: int = 3
    model_id: Optional[str] = None
    output_format: str = "ulaw_8000"


@dataclass(frozen=True)
class SynthesisMetrics:
    """Terminal metrics for one streaming synthesis request."""

    time_to_first_byte_ms: float
    total_ms: float
    chunk_count: int
    byte_count: int

    def to_dict(self) -> dict:
        return {
            "time_to_first_byte_ms": round(self.time_to_first_byte_ms, 1),
            "total_ms": round(self.total_ms, 1),
            "chunk_count": self.chunk_count,
            "byte_count": self.byte_count,
        }

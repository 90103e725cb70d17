"""Synthesis dispatcher: pass-through for short replies, streaming otherwise."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from voice_gateway.models import AgentConfig, SessionSource, SynthesisMetrics, TTSRequest
from voice_gateway.tts.base import (
    ChunkCallback,
    MetricsCallback,
    PassThroughSynthesizer,
    SendCallback,
    StreamingSynthesizer,
    output_format_for,
)

logger = structlog.get_logger()


class SynthesisEngine(str, Enum):
    """Which synthesizer spoke a reply."""

    PASSTHROUGH = "passthrough"
    STREAMING = "streaming"


@dataclass(frozen=True)
class DispatchResult:
    engine: SynthesisEngine
    metrics: Optional[SynthesisMetrics] = None


class SynthesisDispatcher:
    """
    Picks a synthesizer per reply.

    Streaming synthesis has a fixed connection-setup cost, so it is used only
    when it is enabled, the reply is longer than `short_response_threshold`
    words and the agent has a voice configured.
    """

    def __init__(
        self,
        streaming: StreamingSynthesizer,
        passthrough: PassThroughSynthesizer,
        streaming_enabled: bool = True,
        short_response_threshold: int = 15,
        latency_hint: int = 3,
    ) -> None:
        self.streaming = streaming
        self.passthrough = passthrough
        self.streaming_enabled = streaming_enabled
        self.short_response_threshold = short_response_threshold
        self.latency_hint = latency_hint

    def select_engine(self, text: str, agent: AgentConfig) -> SynthesisEngine:
        use_streaming = (
            self.streaming_enabled
            and len(text.split()) > self.short_response_threshold
            and bool(agent.voice.voice_id)
        )
        return SynthesisEngine.STREAMING if use_streaming else SynthesisEngine.PASSTHROUGH

    async def dispatch(
        self,
        text: str,
        agent: AgentConfig,
        source: SessionSource,
        send_audio: ChunkCallback,
        send_control: SendCallback,
        on_metrics: Optional[MetricsCallback] = None,
    ) -> DispatchResult:
        """
        Speak one reply.

        Raises:
            SynthesisError: If streaming synthesis fails
        """
        engine = self.select_engine(text, agent)

        if engine == SynthesisEngine.PASSTHROUGH:
            await self.passthrough.speak(text, send_control)
            return DispatchResult(engine=engine)

        request = TTSRequest(
            text=text,
            voice_id=agent.voice.voice_id,
            stability=agent.voice.stability,
            similarity_boost=agent.voice.similarity_boost,
            latency_hint=self.latency_hint,
            output_format=output_format_for(source),
        )
        metrics = await self.streaming.stream(request, send_audio, on_metrics)
        return DispatchResult(engine=engine, metrics=metrics)

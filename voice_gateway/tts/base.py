"""Base synthesis interfaces."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from voice_gateway.models import SessionSource, SynthesisMetrics, TTSRequest

# Receives raw audio bytes in arrival order.
ChunkCallback = Callable[[bytes], Awaitable[None]]
MetricsCallback = Callable[[SynthesisMetrics], None]
# Sends one JSON control frame to the transport.
SendCallback = Callable[[dict], Awaitable[None]]


def output_format_for(source: SessionSource) -> str:
    """Telephony plays mu-law at 8kHz; browsers decode mp3."""
    if source == SessionSource.TELEPHONY:
        return "ulaw_8000"
    return "mp3_44100_128"


class StreamingSynthesizer(ABC):
    """Synthesizer that returns audio as an ordered chunk stream."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the adapter name."""
        pass

    @abstractmethod
    async def stream(
        self,
        request: TTSRequest,
        on_chunk: ChunkCallback,
        on_metrics: Optional[MetricsCallback] = None,
    ) -> SynthesisMetrics:
        """
        Synthesize one utterance.

        Args:
            request: Text plus voice settings
            on_chunk: Awaited for every audio chunk, in arrival order
            on_metrics: Called once when the stream completes

        Returns:
            Terminal metrics for the request

        Raises:
            SynthesisError: On empty text, provider errors or transport failure
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass


class PassThroughSynthesizer(ABC):
    """Synthesizer that asks the transport to speak text itself."""

    @abstractmethod
    async def speak(self, text: str, send: SendCallback) -> None:
        pass

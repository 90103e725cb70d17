"""Base speech-to-text interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from voice_gateway.models import SessionSource


# Called with (text, is_final). Must not block.
TranscriptCallback = Callable[[str, bool], None]


@dataclass(frozen=True)
class StreamFormat:
    """Audio encoding of the inbound stream."""

    encoding: str
    sample_rate: int
    channels: int = 1


def stream_format_for(source: SessionSource) -> StreamFormat:
    """Telephony sends 8kHz mu-law, browsers send 16kHz linear PCM."""
    if source == SessionSource.TELEPHONY:
        return StreamFormat(encoding="mulaw", sample_rate=8000)
    return StreamFormat(encoding="linear16", sample_rate=16000)


class TranscriptionHandle(ABC):
    """A live transcription stream owned by one session."""

    @abstractmethod
    async def write_audio(self, audio: bytes) -> None:
        """Push one raw audio frame. Never raises."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Tell the provider to finish the stream. Safe to call twice."""
        pass

    @property
    @abstractmethod
    def is_degraded(self) -> bool:
        """True when audio is silently discarded."""
        pass


class NullTranscriptionHandle(TranscriptionHandle):
    """Handle used when the provider is unavailable; every call is a no-op."""

    async def write_audio(self, audio: bytes) -> None:
        return None

    async def close(self) -> None:
        return None

    @property
    def is_degraded(self) -> bool:
        return True


class Transcriber(ABC):
    """Factory for per-session transcription streams."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the adapter name."""
        pass

    @abstractmethod
    async def open(
        self,
        session_id: str,
        source: SessionSource,
        on_transcript: TranscriptCallback,
    ) -> TranscriptionHandle:
        """
        Open a live transcription stream.

        Args:
            session_id: Session the stream belongs to
            source: Connection source, decides the audio encoding
            on_transcript: Called for every non-empty transcript event

        Returns:
            A handle; a NullTranscriptionHandle if the provider is unavailable
        """
        pass

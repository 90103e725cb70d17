"""Shared pytest fixtures and provider fakes."""

import asyncio
from typing import Optional, Sequence

import pytest

from voice_gateway.config import Settings
from voice_gateway.errors import ResponseGenerationError, SynthesisError, TransportClosedError
from voice_gateway.events.publisher import TranscriptPublisher
from voice_gateway.llm.base import GenerationParams, ResponseGenerator
from voice_gateway.models import (
    AgentConfig,
    ChatMessage,
    SessionSource,
    SynthesisMetrics,
    TTSRequest,
)
from voice_gateway.persistence.memory import InMemoryPersistenceGateway
from voice_gateway.pipeline.dispatcher import SynthesisDispatcher
from voice_gateway.pipeline.gate import UtteranceGate
from voice_gateway.pipeline.session import Session
from voice_gateway.stt.base import Transcriber, TranscriptionHandle
from voice_gateway.transport.base import Transport
from voice_gateway.tts.base import StreamingSynthesizer
from voice_gateway.tts.passthrough import FastPassThroughSynthesizer

LONG_REPLY = (
    "Sure, I can help you book that appointment for tomorrow morning, "
    "which time works best for you and your schedule"
)
SHORT_REPLY = "Sure, what time works?"


# =============================================================================
# Fakes
# =============================================================================


class FakeTransport(Transport):
    """Records every frame sent."""

    def __init__(self) -> None:
        self.frames: list[dict] = []
        self.closed = False

    async def send_json(self, frame: dict) -> None:
        if self.closed:
            raise TransportClosedError("closed")
        self.frames.append(frame)

    async def close(self) -> None:
        self.closed = True

    def of_event(self, event: str) -> list[dict]:
        return [f for f in self.frames if f.get("event") == event]

    def of_type(self, frame_type: str) -> list[dict]:
        return [f for f in self.frames if f.get("type") == frame_type]


class FakeTranscriptionHandle(TranscriptionHandle):
    def __init__(self, on_transcript) -> None:
        self.on_transcript = on_transcript
        self.audio: list[bytes] = []
        self.closed = False

    @property
    def is_degraded(self) -> bool:
        return False

    async def write_audio(self, audio: bytes) -> None:
        self.audio.append(audio)

    async def close(self) -> None:
        self.closed = True

    def emit(self, text: str, is_final: bool = True) -> None:
        self.on_transcript(text, is_final)


class FakeTranscriber(Transcriber):
    def __init__(self) -> None:
        self.handles: dict[str, FakeTranscriptionHandle] = {}
        self.sources: dict[str, SessionSource] = {}

    @property
    def name(self) -> str:
        return "fake"

    async def open(self, session_id, source, on_transcript) -> TranscriptionHandle:
        handle = FakeTranscriptionHandle(on_transcript)
        self.handles[session_id] = handle
        self.sources[session_id] = source
        return handle


class FakeGenerator(ResponseGenerator):
    """Returns canned replies; can be held open with `hold()`."""

    def __init__(self, replies: Optional[Sequence[str]] = None, error: Optional[str] = None):
        self.replies = list(replies or [LONG_REPLY])
        self.error = error
        self.calls: list[tuple[str, list[ChatMessage], GenerationParams]] = []
        self._release: Optional[asyncio.Event] = None

    @property
    def name(self) -> str:
        return "fake"

    def hold(self) -> None:
        self._release = asyncio.Event()

    def release(self) -> None:
        if self._release is not None:
            self._release.set()

    async def generate(self, system_prompt, history, params) -> str:
        self.calls.append((system_prompt, list(history), params))
        if self._release is not None:
            await self._release.wait()
        if self.error:
            raise ResponseGenerationError(self.error)
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        return self.replies[index]


class FakeStreamingSynthesizer(StreamingSynthesizer):
    """Streams canned chunks; `hold()` pauses the stream after the first chunk."""

    def __init__(self, chunks: Sequence[bytes] = (b"chunk-1", b"chunk-2"), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.requests: list[TTSRequest] = []
        self.first_chunk_sent = asyncio.Event()
        self._release: Optional[asyncio.Event] = None

    @property
    def name(self) -> str:
        return "fake"

    def hold(self) -> None:
        self._release = asyncio.Event()

    def release(self) -> None:
        if self._release is not None:
            self._release.set()

    async def stream(self, request, on_chunk, on_metrics=None) -> SynthesisMetrics:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        for index, chunk in enumerate(self.chunks):
            await on_chunk(chunk)
            if index == 0:
                self.first_chunk_sent.set()
                if self._release is not None:
                    await self._release.wait()
        metrics = SynthesisMetrics(
            time_to_first_byte_ms=1.0,
            total_ms=2.0,
            chunk_count=len(self.chunks),
            byte_count=sum(len(c) for c in self.chunks),
        )
        if on_metrics:
            on_metrics(metrics)
        return metrics


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        deepgram_api_key="",
        openai_api_key="",
        elevenlabs_api_key="test-key",
        persistence_backend="memory",
    )


@pytest.fixture
def agent() -> AgentConfig:
    return AgentConfig.model_validate(
        {
            "id": "agent-1",
            "name": "Front Desk",
            "systemPrompt": "You are a scheduling assistant.",
            "voiceSettings": {"voiceId": "voice-1", "stability": 0.4},
        }
    )


@pytest.fixture
def persistence(agent) -> InMemoryPersistenceGateway:
    return InMemoryPersistenceGateway(agents={agent.id: agent})


@pytest.fixture
def publisher() -> TranscriptPublisher:
    return TranscriptPublisher()


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def synthesizer() -> FakeStreamingSynthesizer:
    return FakeStreamingSynthesizer()


@pytest.fixture
def dispatcher(synthesizer) -> SynthesisDispatcher:
    return SynthesisDispatcher(
        streaming=synthesizer,
        passthrough=FastPassThroughSynthesizer(voice="Polly.Joanna"),
        streaming_enabled=True,
        short_response_threshold=15,
    )


@pytest.fixture
def make_session(transcriber, generator, dispatcher, publisher, persistence):
    """Build a session wired to the shared fakes."""

    def _make(
        source: SessionSource = SessionSource.TELEPHONY,
        agent_id: Optional[str] = "agent-1",
        queue_size: int = 32,
        transport: Optional[FakeTransport] = None,
    ) -> Session:
        return Session(
            source=source,
            transport=transport or FakeTransport(),
            transcriber=transcriber,
            generator=generator,
            dispatcher=dispatcher,
            publisher=publisher,
            persistence=persistence,
            gate=UtteranceGate(8),
            agent_id=agent_id,
            queue_size=queue_size,
        )

    return _make


def start_frame(call_id: str = "CA1", stream_id: str = "MZ1") -> str:
    return (
        '{"event": "start", "streamSid": "%s", '
        '"start": {"callSid": "%s", "streamSid": "%s"}}' % (stream_id, call_id, stream_id)
    )

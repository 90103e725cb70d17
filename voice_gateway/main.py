"""
Voice Gateway Service - FastAPI Application.

Bridges telephony media streams and browser audio sockets with streaming
STT, single-shot LLM responses and streaming TTS.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect

from voice_gateway import __version__
from voice_gateway.config import Settings, get_settings
from voice_gateway.errors import TransportClosedError
from voice_gateway.events.publisher import TranscriptPublisher
from voice_gateway.llm.base import ResponseGenerator
from voice_gateway.llm.openai import OpenAIResponseGenerator
from voice_gateway.logging import configure_logging
from voice_gateway.persistence import PersistenceGateway, create_gateway
from voice_gateway.pipeline.dispatcher import SynthesisDispatcher
from voice_gateway.pipeline.gate import UtteranceGate
from voice_gateway.pipeline.registry import SessionRegistry
from voice_gateway.stt.base import Transcriber
from voice_gateway.stt.deepgram import DeepgramTranscriber
from voice_gateway.transport.listener import SessionFactory, WebSocketTransport, handle_connection
from voice_gateway.tts.base import PassThroughSynthesizer, StreamingSynthesizer
from voice_gateway.tts.elevenlabs import ElevenLabsStreamingSynthesizer
from voice_gateway.tts.passthrough import FastPassThroughSynthesizer

logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    transcriber: Optional[Transcriber] = None,
    generator: Optional[ResponseGenerator] = None,
    synthesizer: Optional[StreamingSynthesizer] = None,
    passthrough: Optional[PassThroughSynthesizer] = None,
    persistence: Optional[PersistenceGateway] = None,
    publisher: Optional[TranscriptPublisher] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Provider adapters default to the ones selected by settings; any of them
    can be passed in to replace the real provider.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    transcriber = transcriber or DeepgramTranscriber(settings=settings)
    generator = generator or OpenAIResponseGenerator(settings=settings)
    synthesizer = synthesizer or ElevenLabsStreamingSynthesizer(settings=settings)
    passthrough = passthrough or FastPassThroughSynthesizer(settings.default_say_voice)
    persistence = persistence or create_gateway(settings)
    publisher = publisher or TranscriptPublisher()
    registry = SessionRegistry()

    factory = SessionFactory(
        transcriber=transcriber,
        generator=generator,
        dispatcher=SynthesisDispatcher(
            streaming=synthesizer,
            passthrough=passthrough,
            streaming_enabled=settings.enable_streaming_tts,
            short_response_threshold=settings.short_response_threshold,
            latency_hint=settings.latency_optimization,
        ),
        publisher=publisher,
        persistence=persistence,
        registry=registry,
        gate=UtteranceGate(settings.early_trigger_words),
        queue_size=settings.transcript_queue_size,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "voice_gateway_starting",
            port=settings.port,
            streaming_tts=settings.enable_streaming_tts,
            persistence=settings.persistence_backend,
        )

        yield

        logger.info("voice_gateway_stopping", active_sessions=len(registry))
        await registry.close_all()
        await synthesizer.close()
        await generator.close()
        await persistence.close()

    app = FastAPI(
        title="Voice Gateway",
        description="Real-time voice conversation gateway.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.publisher = publisher
    app.state.factory = factory

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "version": __version__,
            "active_sessions": len(registry.get_active_sessions()),
            "streaming_tts": settings.enable_streaming_tts,
        }

    @app.get("/sessions")
    async def list_sessions():
        """Snapshot of live sessions."""
        return {"sessions": [s.to_dict() for s in registry.sessions.values()]}

    @app.websocket("/voice-stream")
    async def voice_stream(
        websocket: WebSocket,
        source: Optional[str] = Query(default=None),
        agent_id: Optional[str] = Query(default=None, alias="agentId"),
    ):
        """
        Audio streaming endpoint.

        Client -> Server:
        - {"event": "start", "start": {"callId", "streamId"}}
        - {"event": "media", "media": {"payload": "<base64>"}}
        - {"event": "transcript", "transcript": {"text", "isFinal"}}
        - {"event": "stop"}

        Server -> Client:
        - {"event": "media", "streamSid"|"streamId", "media": {"payload"}}
        - {"event": "say", "text", "voice"}
        - {"type": "status", ...} and {"type": "error", "message"}
        """
        await handle_connection(websocket, factory, source=source, agent_id=agent_id)

    @app.websocket("/ws/monitor/{call_id}")
    async def monitor(websocket: WebSocket, call_id: str):
        """Stream a call's transcript and status events to an observer."""
        subscription = publisher.subscribe(call_id)
        await websocket.accept()
        transport = WebSocketTransport(websocket)
        log = logger.bind(call_id=call_id)
        log.info("Monitor connected")

        try:
            async for event in subscription:
                await transport.send_json(event)
        except (TransportClosedError, WebSocketDisconnect):
            log.info("Monitor disconnected")
        finally:
            subscription.cancel()
            await transport.close()

    return app


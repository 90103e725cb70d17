"""WebSocket transport listener for telephony media streams and browsers."""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from voice_gateway.errors import TransportClosedError
from voice_gateway.events.publisher import TranscriptPublisher
from voice_gateway.llm.base import ResponseGenerator
from voice_gateway.models import SessionSource, SessionState
from voice_gateway.persistence.base import PersistenceGateway
from voice_gateway.pipeline.dispatcher import SynthesisDispatcher
from voice_gateway.pipeline.gate import UtteranceGate
from voice_gateway.pipeline.registry import SessionRegistry
from voice_gateway.pipeline.session import Session
from voice_gateway.stt.base import Transcriber
from voice_gateway.transport.base import Transport

logger = structlog.get_logger()

TELEPHONY_SOURCE_NAMES = ("telephony", "twilio")
TELEPHONY_USER_AGENTS = ("twilio",)


def classify_source(source: Optional[str], user_agent: Optional[str]) -> SessionSource:
    """
    Decide where a connection comes from.

    An explicit `source` query parameter wins. Otherwise a known telephony
    user agent means telephony and anything else is a browser.
    """
    if source:
        value = source.strip().lower()
        if value in TELEPHONY_SOURCE_NAMES:
            return SessionSource.TELEPHONY
        if value == SessionSource.BROWSER.value:
            return SessionSource.BROWSER

    ua = (user_agent or "").lower()
    if any(signature in ua for signature in TELEPHONY_USER_AGENTS):
        return SessionSource.TELEPHONY
    return SessionSource.BROWSER


class WebSocketTransport(Transport):
    """Transport over a FastAPI websocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self.websocket.client_state == WebSocketState.DISCONNECTED

    async def send_json(self, frame: dict) -> None:
        if self.closed:
            raise TransportClosedError("WebSocket is closed")
        try:
            await self.websocket.send_json(frame)
        except (WebSocketDisconnect, RuntimeError) as e:
            self._closed = True
            raise TransportClosedError(str(e)) from e

    async def close(self) -> None:
        if self.closed:
            self._closed = True
            return
        self._closed = True
        try:
            await self.websocket.close()
        except RuntimeError as e:
            logger.debug("WebSocket already closed", error=str(e))


@dataclass
class SessionFactory:
    """Shared, read-only collaborators handed to every new session."""

    transcriber: Transcriber
    generator: ResponseGenerator
    dispatcher: SynthesisDispatcher
    publisher: TranscriptPublisher
    persistence: PersistenceGateway
    registry: SessionRegistry
    gate: UtteranceGate
    queue_size: int = 32

    def create(
        self,
        source: SessionSource,
        transport: Transport,
        agent_id: Optional[str] = None,
    ) -> Session:
        return Session(
            source=source,
            transport=transport,
            transcriber=self.transcriber,
            generator=self.generator,
            dispatcher=self.dispatcher,
            publisher=self.publisher,
            persistence=self.persistence,
            gate=self.gate,
            agent_id=agent_id,
            queue_size=self.queue_size,
        )


async def handle_connection(
    websocket: WebSocket,
    factory: SessionFactory,
    source: Optional[str] = None,
    agent_id: Optional[str] = None,
) -> None:
    """
    Serve one `/voice-stream` connection until it closes.

    Text frames are routed to the session; binary frames are treated as raw
    audio. The session is always closed and unregistered on exit.
    """
    session_source = classify_source(source, websocket.headers.get("user-agent"))
    await websocket.accept()

    transport = WebSocketTransport(websocket)
    session = factory.create(session_source, transport, agent_id=agent_id)
    registry = factory.registry
    registry.register(session)

    log = logger.bind(session_id=session.id, source=session_source.value)
    log.info("New connection", agent_id=agent_id)

    try:
        while session.state != SessionState.CLOSED:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                log.info("WebSocket disconnected", code=message.get("code"))
                break

            if message.get("text") is not None:
                await session.handle_message(message["text"])
                if session.call_id and registry.get_by_call_id(session.call_id) is None:
                    registry.bind_call_id(session)
            elif message.get("bytes") is not None:
                await session.handle_audio(message["bytes"])

    except WebSocketDisconnect:
        log.info("WebSocket disconnected")

    except Exception as e:
        log.error("WebSocket error", error=str(e))

    finally:
        await session.close()
        registry.unregister(session)
        await transport.close()

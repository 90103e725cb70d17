"""
Per-connection session state machine.

A session moves CONNECTING -> ACTIVE -> CLOSING -> CLOSED and never back.
Transcripts from the STT adapter (or browser transcript frames) go into a
bounded queue drained by one consumer task; each gated utterance starts a
turn task (response generation plus synthesis) that runs off the read loop
so audio ingestion is never blocked.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import uuid4

import structlog

from voice_gateway.errors import (
    MalformedMessageError,
    ResponseGenerationError,
    SynthesisError,
    TransportClosedError,
)
from voice_gateway.events.publisher import TranscriptPublisher
from voice_gateway.llm.base import GenerationParams, ResponseGenerator
from voice_gateway.llm.functions import detect_function_call
from voice_gateway.llm.prompts import build_system_prompt
from voice_gateway.models import (
    AgentConfig,
    ChatMessage,
    Role,
    SessionSource,
    SessionState,
    SynthesisMetrics,
    Utterance,
)
from voice_gateway.persistence.base import PersistenceGateway
from voice_gateway.pipeline.dispatcher import SynthesisDispatcher
from voice_gateway.pipeline.gate import UtteranceGate
from voice_gateway.stt.base import NullTranscriptionHandle, Transcriber, TranscriptionHandle
from voice_gateway.transport.base import Transport
from voice_gateway.transport.envelopes import (
    InboundEnvelope,
    InboundEvent,
    error_frame,
    media_frame,
    parse_envelope,
    status_frame,
)

logger = structlog.get_logger()


class Session:
    """State for one audio-streaming connection, from accept to close."""

    def __init__(
        self,
        source: SessionSource,
        transport: Transport,
        transcriber: Transcriber,
        generator: ResponseGenerator,
        dispatcher: SynthesisDispatcher,
        publisher: TranscriptPublisher,
        persistence: PersistenceGateway,
        gate: Optional[UtteranceGate] = None,
        agent_id: Optional[str] = None,
        queue_size: int = 32,
        session_id: Optional[str] = None,
    ) -> None:
        self.id = session_id or uuid4().hex
        self.source = source
        self.transport = transport
        self.transcriber = transcriber
        self.generator = generator
        self.dispatcher = dispatcher
        self.publisher = publisher
        self.persistence = persistence
        self.gate = gate or UtteranceGate()

        self.state = SessionState.CONNECTING
        self.active = True
        self.call_id: Optional[str] = None
        self.stream_key: Optional[str] = None
        self.agent_id = agent_id
        self.agent: Optional[AgentConfig] = None
        self.history: list[ChatMessage] = []
        self.turn_count = 0
        self.created_at = datetime.now(timezone.utc)

        self._started = time.perf_counter()
        self._system_prompt: Optional[str] = None
        self._stt: TranscriptionHandle = NullTranscriptionHandle()
        self._queue: asyncio.Queue[Utterance] = asyncio.Queue(maxsize=queue_size)
        self._consumer_task: Optional[asyncio.Task] = None
        self._turn_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()

        self.logger = logger.bind(session_id=self.id, source=source.value)

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def handle_message(self, raw: Union[str, bytes]) -> None:
        """Route one inbound text frame. Malformed frames are logged and ignored."""
        try:
            envelope = parse_envelope(raw)
        except MalformedMessageError as e:
            self.logger.warning("Malformed message ignored", error=str(e))
            return

        kind = envelope.kind
        if kind == InboundEvent.START:
            await self._handle_start(envelope)
        elif kind == InboundEvent.MEDIA:
            await self._handle_media(envelope)
        elif kind == InboundEvent.TRANSCRIPT:
            payload = envelope.transcript_payload()
            self.enqueue_transcript(payload.text, payload.is_final, payload.confidence)
        elif kind == InboundEvent.STOP:
            self.logger.info("Stream stop received")
            await self.close(reason="stop")
        else:
            self.logger.debug("Ignoring event", event=envelope.event)

    async def _handle_start(self, envelope: InboundEnvelope) -> None:
        if self.state != SessionState.CONNECTING:
            self.logger.warning("Duplicate start ignored", state=self.state.value)
            return

        self.call_id = envelope.call_id or self.call_id
        if not self.call_id and self.source == SessionSource.BROWSER:
            self.call_id = f"browser-{self.id}"
        self.stream_key = envelope.resolved_stream_id
        self.logger = self.logger.bind(call_id=self.call_id)

        await self._resolve_agent()
        handle = await self.transcriber.open(self.id, self.source, self.enqueue_transcript)

        if not self.active:
            # Closed while resolving the agent or opening STT.
            await handle.close()
            return

        self._stt = handle
        self.state = SessionState.ACTIVE
        self._consumer_task = asyncio.create_task(self._consume_transcripts())

        self.logger.info(
            "Stream started",
            stream_key=self.stream_key,
            agent_id=self.agent_id,
            stt_degraded=handle.is_degraded,
        )
        await self._send(status_frame("Stream started", callId=self.call_id))
        await self.publisher.publish(self.call_id, {"type": "status", "status": "started"})

    async def _resolve_agent(self) -> None:
        if self.agent is not None:
            return

        try:
            if self.agent_id:
                self.agent = await self.persistence.resolve_agent(self.agent_id)

            if self.agent is None and self.call_id:
                mapped = await self.persistence.resolve_agent_by_call_id(self.call_id)
                if mapped:
                    self.agent_id = mapped
                    self.agent = await self.persistence.resolve_agent(mapped)
        except Exception as e:
            self.logger.exception("Agent lookup failed", agent_id=self.agent_id, error=str(e))
            self.agent = None

        if self.agent is None:
            self.logger.warning("No agent resolved, turns disabled", agent_id=self.agent_id)
            return

        self._system_prompt = build_system_prompt(self.agent)
        self.logger.info("Agent loaded", agent_id=self.agent.id, agent_name=self.agent.name)

    async def _handle_media(self, envelope: InboundEnvelope) -> None:
        if self.state != SessionState.ACTIVE:
            return
        try:
            audio = envelope.audio()
        except MalformedMessageError as e:
            self.logger.warning("Malformed media ignored", error=str(e))
            return
        await self.handle_audio(audio)

    async def handle_audio(self, audio: bytes) -> None:
        """Forward raw audio to the STT stream while ACTIVE."""
        if self.state != SessionState.ACTIVE or not audio:
            return
        await self._stt.write_audio(audio)

    def enqueue_transcript(
        self,
        text: str,
        is_final: bool,
        confidence: Optional[float] = None,
    ) -> None:
        """Queue a transcript event. Never blocks; drops the newest on overflow."""
        if self.state != SessionState.ACTIVE:
            return
        try:
            self._queue.put_nowait(Utterance(text=text, is_final=is_final, confidence=confidence))
        except asyncio.QueueFull:
            self.logger.warning("Transcript queue full, dropping utterance", text=text[:50])

    # -------------------------------------------------------------------------
    # Turns
    # -------------------------------------------------------------------------

    def _turn_in_flight(self) -> bool:
        return self._turn_task is not None and not self._turn_task.done()

    async def _consume_transcripts(self) -> None:
        while True:
            utterance = await self._queue.get()
            try:
                if not self.gate.should_process(utterance):
                    continue
                if self.agent is None:
                    self.logger.debug("No agent, utterance skipped", text=utterance.text[:50])
                    continue
                if self._turn_in_flight():
                    self.logger.info(
                        "Turn in progress, utterance dropped",
                        text=utterance.text[:50],
                    )
                    continue
                self._turn_task = asyncio.create_task(self._run_turn(utterance))
            finally:
                self._queue.task_done()

    async def _run_turn(self, utterance: Utterance) -> None:
        if not self.active:
            return

        turn_number = self.turn_count + 1
        log = self.logger.bind(turn=turn_number)
        turn_start = time.perf_counter()
        log.info("Processing utterance", text=utterance.text[:100], word_count=utterance.word_count)

        try:
            self.history.append(ChatMessage(Role.USER, utterance.text))
            await self.publisher.publish(
                self.call_id,
                {"type": "user", "text": utterance.text, "final": utterance.is_final},
            )
            self._persist(Role.USER, utterance.text)

            try:
                reply = await self.generator.generate(
                    self._system_prompt or build_system_prompt(self.agent),
                    list(self.history),
                    GenerationParams.from_agent(self.agent),
                )
            except ResponseGenerationError as e:
                log.error("Response generation failed", error=str(e))
                await self._report_error("generation", str(e))
                return
            generation_ms = (time.perf_counter() - turn_start) * 1000

            if not self.active:
                log.info("Session closed during generation, reply discarded")
                return

            self.history.append(ChatMessage(Role.ASSISTANT, reply))
            await self.publisher.publish(
                self.call_id,
                {"type": "assistant", "text": reply, "final": True},
            )
            self._persist(Role.ASSISTANT, reply)

            spoken = reply
            call = detect_function_call(reply, self.agent.functions)
            if call is not None:
                log.info("Function call requested", function=call.name, parameters=call.parameters)
                await self.publisher.publish(
                    self.call_id,
                    {"type": "function_call", **call.to_dict()},
                )
                spoken = call.preamble

            synthesis_start = time.perf_counter()
            engine = await self._speak(spoken, log) if spoken else None

            if self.active:
                self.turn_count += 1

            log.info(
                "Utterance complete",
                total_latency_ms=round((time.perf_counter() - turn_start) * 1000, 1),
                generation_ms=round(generation_ms, 1),
                synthesis_ms=round((time.perf_counter() - synthesis_start) * 1000, 1),
                tts_engine=engine,
            )
        except Exception as e:
            log.exception("Turn processing error", error=str(e))
            await self._report_error("turn", str(e))

    async def _speak(self, text: str, log) -> Optional[str]:
        """Dispatch a reply to synthesis; returns the engine used, or None on failure."""
        try:
            result = await self.dispatcher.dispatch(
                text,
                self.agent,
                self.source,
                send_audio=self._send_audio,
                send_control=self._send,
                on_metrics=self._on_synthesis_metrics,
            )
        except SynthesisError as e:
            log.error("Synthesis failed", error=str(e), status_code=e.status_code)
            await self._report_error("synthesis", str(e))
            return None
        return result.engine.value

    def _on_synthesis_metrics(self, metrics: SynthesisMetrics) -> None:
        self.logger.info("First audio byte", **metrics.to_dict())

    async def _report_error(self, stage: str, message: str) -> None:
        if not self.active:
            return
        await self.publisher.publish(
            self.call_id,
            {"type": "error", "stage": stage, "message": message},
        )
        await self._send(error_frame(message))

    def _persist(self, role: Role, text: str) -> None:
        if not self.call_id:
            return
        task = asyncio.create_task(self._append_message(self.call_id, role, text))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _append_message(self, call_id: str, role: Role, text: str) -> None:
        try:
            await self.persistence.append_message(call_id, role, text)
        except Exception as e:
            self.logger.error("Failed to persist message", role=role.value, error=str(e))

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def _send(self, frame: dict) -> None:
        if not self.active:
            return
        try:
            await self.transport.send_json(frame)
        except TransportClosedError:
            self.logger.debug(
                "Transport closed, frame dropped",
                frame_type=frame.get("type") or frame.get("event"),
            )

    async def _send_audio(self, chunk: bytes) -> None:
        await self._send(media_frame(self.stream_key, chunk, self.source))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self, reason: str = "transport_closed") -> None:
        """Move to CLOSING then CLOSED. Safe to call more than once."""
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return

        self.active = False
        self.state = SessionState.CLOSING
        self.logger.info("Session closing", reason=reason)

        if self.call_id:
            await self.publisher.publish(self.call_id, {"type": "status", "status": "stopped"})
            await self.publisher.close(self.call_id)

        await self._stt.close()

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass

        self.state = SessionState.CLOSED
        self.logger.info(
            "Session closed",
            duration_ms=round((time.perf_counter() - self._started) * 1000, 1),
            turns=self.turn_count,
        )

    async def wait_until_idle(self) -> None:
        """Wait until queued transcripts are gated and any running turn finishes."""
        if self._consumer_task is not None and not self._consumer_task.done():
            await self._queue.join()
        if self._turn_task is not None:
            await asyncio.shield(self._turn_task)

    def to_dict(self) -> dict:
        """Convert session to dictionary."""
        return {
            "session_id": self.id,
            "source": self.source.value,
            "state": self.state.value,
            "call_id": self.call_id,
            "agent_id": self.agent_id,
            "turn_count": self.turn_count,
            "turn_in_flight": self._turn_in_flight(),
            "created_at": self.created_at.isoformat(),
        }

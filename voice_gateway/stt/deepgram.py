"""Deepgram live transcription adapter."""

from typing import Any, Optional

import structlog
from deepgram import (
    DeepgramClient,
    DeepgramClientOptions,
    LiveOptions,
    LiveTranscriptionEvents,
)

from voice_gateway.config import Settings, get_settings
from voice_gateway.models import SessionSource
from voice_gateway.stt.base import (
    NullTranscriptionHandle,
    Transcriber,
    TranscriptCallback,
    TranscriptionHandle,
    stream_format_for,
)

logger = structlog.get_logger()


class DeepgramTranscriptionHandle(TranscriptionHandle):
    """Wraps one Deepgram live connection."""

    def __init__(self, connection: Any, session_id: str) -> None:
        self._connection = connection
        self._closed = False
        self.logger = logger.bind(adapter="deepgram", session_id=session_id)

    @property
    def is_degraded(self) -> bool:
        return False

    async def write_audio(self, audio: bytes) -> None:
        if self._closed or not audio:
            return
        try:
            await self._connection.send(audio)
        except Exception as e:
            self.logger.warning("Error sending audio to Deepgram", error=str(e))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._connection.finish()
        except Exception as e:
            self.logger.error("Error disconnecting from Deepgram", error=str(e))
        self.logger.info("Disconnected from Deepgram")


class DeepgramTranscriber(Transcriber):
    """
    Opens one Deepgram streaming connection per session.

    Without an API key, or when the connection fails to start, sessions get
    a NullTranscriptionHandle and the call continues without transcripts.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[DeepgramClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.deepgram_api_key
        self.logger = logger.bind(adapter="deepgram")

        self.client = client
        if self.client is None and self.api_key:
            self.client = DeepgramClient(
                self.api_key,
                DeepgramClientOptions(verbose=self.settings.debug),
            )

    @property
    def name(self) -> str:
        return "deepgram"

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def build_options(self, source: SessionSource) -> LiveOptions:
        """Build live options for the source's audio encoding."""
        fmt = stream_format_for(source)
        return LiveOptions(
            model=self.settings.deepgram_model,
            language=self.settings.deepgram_language,
            encoding=fmt.encoding,
            sample_rate=fmt.sample_rate,
            channels=fmt.channels,
            punctuate=True,
            interim_results=True,
        )

    async def open(
        self,
        session_id: str,
        source: SessionSource,
        on_transcript: TranscriptCallback,
    ) -> TranscriptionHandle:
        log = self.logger.bind(session_id=session_id)

        if not self.enabled:
            log.warning("Deepgram API key not set, transcription disabled")
            return NullTranscriptionHandle()

        async def _on_transcript(*args, **kwargs) -> None:
            result = kwargs.get("result") or (args[1] if len(args) > 1 else None)
            if not result:
                return
            try:
                alternatives = result.channel.alternatives
                if not alternatives:
                    return
                text = alternatives[0].transcript
                if not text or not text.strip():
                    return
                is_final = bool(result.is_final)
            except AttributeError as e:
                log.warning("Unexpected Deepgram payload", error=str(e))
                return

            log.debug("Transcript received", text=text[:100], is_final=is_final)
            on_transcript(text, is_final)

        async def _on_error(*args, **kwargs) -> None:
            error = kwargs.get("error") or (args[1] if len(args) > 1 else "Unknown error")
            log.error("Deepgram error", error=str(error))

        async def _on_close(*args, **kwargs) -> None:
            log.info("Deepgram connection closed")

        try:
            connection = self.client.listen.asynclive.v("1")
            connection.on(LiveTranscriptionEvents.Transcript, _on_transcript)
            connection.on(LiveTranscriptionEvents.Error, _on_error)
            connection.on(LiveTranscriptionEvents.Close, _on_close)

            started = await connection.start(self.build_options(source))
            if not started:
                raise ConnectionError("Failed to start Deepgram connection")
        except Exception as e:
            log.error("Failed to connect to Deepgram", error=str(e))
            return NullTranscriptionHandle()

        log.info(
            "Connected to Deepgram",
            model=self.settings.deepgram_model,
            source=source.value,
        )
        return DeepgramTranscriptionHandle(connection, session_id)

"""ElevenLabs streaming synthesis adapter."""

import time
from typing import Optional

import httpx
import structlog

from voice_gateway.config import Settings, get_settings
from voice_gateway.errors import SynthesisError
from voice_gateway.models import SynthesisMetrics, TTSRequest
from voice_gateway.tts.base import ChunkCallback, MetricsCallback, StreamingSynthesizer

logger = structlog.get_logger()


class ElevenLabsStreamingSynthesizer(StreamingSynthesizer):
    """
    ElevenLabs TTS over the HTTP streaming endpoint.

    Features:
    - Chunks are forwarded as they arrive, no buffering
    - Time-to-first-byte measured per request
    - Turbo model and streaming latency optimization by default
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.elevenlabs_api_key
        self.model_id = self.settings.elevenlabs_model_id

        self._client = client
        self.logger = logger.bind(adapter="elevenlabs")

    @property
    def name(self) -> str:
        return "elevenlabs"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.elevenlabs_base_url,
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                },
                timeout=self.settings.elevenlabs_timeout,
            )
        return self._client

    def _build_payload(self, request: TTSRequest) -> dict:
        return {
            "text": request.text,
            "model_id": request.model_id or self.model_id,
            "voice_settings": {
                "stability": request.stability,
                "similarity_boost": request.similarity_boost,
                "style": 0.0,
                "use_speaker_boost": True,
            },
        }

    async def stream(
        self,
        request: TTSRequest,
        on_chunk: ChunkCallback,
        on_metrics: Optional[MetricsCallback] = None,
    ) -> SynthesisMetrics:
        if not request.text or not request.text.strip():
            raise SynthesisError("Cannot synthesize empty text")

        client = await self._get_client()
        started = time.perf_counter()
        first_chunk_at: Optional[float] = None
        chunk_count = 0
        byte_count = 0

        try:
            async with client.stream(
                "POST",
                f"/text-to-speech/{request.voice_id}/stream",
                json=self._build_payload(request),
                params={
                    "output_format": request.output_format,
                    "optimize_streaming_latency": request.latency_hint,
                },
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    self.logger.error(
                        "ElevenLabs API error",
                        status_code=response.status_code,
                        body=body[:200],
                    )
                    raise SynthesisError(
                        "ElevenLabs API error",
                        status_code=response.status_code,
                        body=body,
                    )

                async for chunk in response.aiter_bytes():
                    if not chunk:
                        continue
                    if first_chunk_at is None:
                        first_chunk_at = time.perf_counter()
                        self.logger.debug(
                            "First audio chunk",
                            ttfb_ms=round((first_chunk_at - started) * 1000, 1),
                        )
                    chunk_count += 1
                    byte_count += len(chunk)
                    await on_chunk(chunk)

        except httpx.HTTPError as e:
            self.logger.error("ElevenLabs streaming error", error=str(e))
            raise SynthesisError(f"ElevenLabs streaming failed: {e}") from e

        finished = time.perf_counter()
        metrics = SynthesisMetrics(
            time_to_first_byte_ms=((first_chunk_at or finished) - started) * 1000,
            total_ms=(finished - started) * 1000,
            chunk_count=chunk_count,
            byte_count=byte_count,
        )

        self.logger.info(
            "Streamed audio",
            text_length=len(request.text),
            voice_id=request.voice_id,
            **metrics.to_dict(),
        )

        if on_metrics is not None:
            on_metrics(metrics)
        return metrics

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

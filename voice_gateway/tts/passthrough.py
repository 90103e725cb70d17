"""Fast pass-through synthesis using the transport's built-in voice."""

from typing import Optional

import structlog

from voice_gateway.config import get_settings
from voice_gateway.tts.base import PassThroughSynthesizer, SendCallback

logger = structlog.get_logger()


class FastPassThroughSynthesizer(PassThroughSynthesizer):
    """Sends a `say` directive; no audio flows back through the gateway."""

    def __init__(self, voice: Optional[str] = None) -> None:
        self.voice = voice or get_settings().default_say_voice
        self.logger = logger.bind(adapter="passthrough")

    def build_directive(self, text: str) -> dict:
        return {"event": "say", "text": text, "voice": self.voice}

    async def speak(self, text: str, send: SendCallback) -> None:
        await send(self.build_directive(text))
        self.logger.debug("Sent say directive", text_length=len(text), voice=self.voice)

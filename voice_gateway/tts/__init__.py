"""Text-to-speech adapters."""

from voice_gateway.tts.base import (
    PassThroughSynthesizer,
    StreamingSynthesizer,
    output_format_for,
)
from voice_gateway.tts.elevenlabs import ElevenLabsStreamingSynthesizer
from voice_gateway.tts.passthrough import FastPassThroughSynthesizer

__all__ = [
    "PassThroughSynthesizer",
    "StreamingSynthesizer",
    "output_format_for",
    "ElevenLabsStreamingSynthesizer",
    "FastPassThroughSynthesizer",
]

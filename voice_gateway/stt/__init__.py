"""Speech-to-text adapters."""

from voice_gateway.stt.base import (
    NullTranscriptionHandle,
    Transcriber,
    TranscriptionHandle,
    stream_format_for,
)
from voice_gateway.stt.deepgram import DeepgramTranscriber

__all__ = [
    "NullTranscriptionHandle",
    "Transcriber",
    "TranscriptionHandle",
    "stream_format_for",
    "DeepgramTranscriber",
]

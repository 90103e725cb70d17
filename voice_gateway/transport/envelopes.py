"""Inbound envelope parsing and outbound frame builders."""

import base64
import json
from enum import Enum
from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from voice_gateway.errors import MalformedMessageError
from voice_gateway.models import SessionSource


class InboundEvent(str, Enum):
    """Events the session acts on. Anything else is ignored."""

    START = "start"
    TRANSCRIPT = "transcript"
    MEDIA = "media"
    STOP = "stop"


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StartPayload(_Envelope):
    call_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("callId", "callSid", "call_id")
    )
    stream_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("streamId", "streamSid", "stream_id")
    )


class TranscriptPayload(_Envelope):
    text: str = ""
    is_final: bool = Field(
        default=False, validation_alias=AliasChoices("isFinal", "is_final")
    )
    confidence: Optional[float] = None


class MediaPayload(_Envelope):
    payload: str = ""


class InboundEnvelope(_Envelope):
    """
    One JSON text frame from the transport.

    Accepts the telephony media-stream shape (`event`, `start.callSid`,
    top-level `streamSid`) as well as the browser shape, which may use
    `type` instead of `event` and put transcript fields at the top level.
    """

    event: str = Field(validation_alias=AliasChoices("event", "type"))
    stream_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("streamSid", "streamId")
    )
    start: Optional[StartPayload] = None
    transcript: Optional[TranscriptPayload] = None
    media: Optional[MediaPayload] = None

    # Browser clients may flatten the transcript.
    text: Optional[str] = None
    is_final: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("isFinal", "is_final")
    )
    confidence: Optional[float] = None

    @property
    def kind(self) -> Optional[InboundEvent]:
        try:
            return InboundEvent(self.event)
        except ValueError:
            return None

    @property
    def call_id(self) -> Optional[str]:
        return self.start.call_id if self.start else None

    @property
    def resolved_stream_id(self) -> Optional[str]:
        if self.start and self.start.stream_id:
            return self.start.stream_id
        return self.stream_id

    def transcript_payload(self) -> TranscriptPayload:
        if self.transcript is not None:
            return self.transcript
        return TranscriptPayload(
            text=self.text or "",
            is_final=bool(self.is_final),
            confidence=self.confidence,
        )

    def audio(self) -> bytes:
        """Decode the base64 media payload."""
        if self.media is None or not self.media.payload:
            return b""
        try:
            return base64.b64decode(self.media.payload, validate=True)
        except ValueError as e:
            raise MalformedMessageError(f"Invalid media payload: {e}") from e


def parse_envelope(raw: Union[str, bytes]) -> InboundEnvelope:
    """
    Parse a text frame.

    Raises:
        MalformedMessageError: If the frame is not a JSON object with an event
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedMessageError("Envelope must be a JSON object")
    try:
        return InboundEnvelope.model_validate(data)
    except ValidationError as e:
        raise MalformedMessageError(f"Invalid envelope: {e.errors()[0]['msg']}") from e


# =============================================================================
# Outbound frames
# =============================================================================


def media_frame(stream_id: Optional[str], audio: bytes, source: SessionSource) -> dict:
    """Wrap an audio chunk; telephony expects `streamSid`."""
    key = "streamSid" if source == SessionSource.TELEPHONY else "streamId"
    return {
        "event": "media",
        key: stream_id,
        "media": {"payload": base64.b64encode(audio).decode("ascii")},
    }


def status_frame(message: str, **extra) -> dict:
    return {"type": "status", "message": message, **extra}


def error_frame(message: str) -> dict:
    return {"type": "error", "message": message}

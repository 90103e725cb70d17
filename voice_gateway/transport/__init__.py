"""Client transports and wire envelopes.

The websocket listener lives in `voice_gateway.transport.listener`; it is not
re-exported here because it depends on the pipeline package.
"""

from voice_gateway.transport.base import Transport
from voice_gateway.transport.envelopes import (
    InboundEnvelope,
    InboundEvent,
    error_frame,
    media_frame,
    parse_envelope,
    status_frame,
)

__all__ = [
    "Transport",
    "InboundEnvelope",
    "InboundEvent",
    "error_frame",
    "media_frame",
    "parse_envelope",
    "status_frame",
]

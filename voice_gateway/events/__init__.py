"""Live call event publishing."""

from voice_gateway.events.publisher import Subscription, TranscriptPublisher

__all__ = ["Subscription", "TranscriptPublisher"]

"""Exception hierarchy for the voice gateway."""

from typing import Optional


class VoiceGatewayError(Exception):
    """Base class for all gateway errors."""


class MalformedMessageError(VoiceGatewayError):
    """An inbound transport frame could not be parsed."""


class ResponseGenerationError(VoiceGatewayError):
    """The response generator failed to produce a reply."""

    def __init__(self, message: str, provider: str = "openai") -> None:
        super().__init__(message)
        self.provider = provider


class SynthesisError(VoiceGatewayError):
    """Streaming synthesis failed.

    Carries the provider status code and response body when the provider
    answered with a non-success status; ``status_code`` is ``None`` for
    connection-level failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        if self.status_code is None:
            return self.args[0]
        return f"{self.args[0]}: {self.status_code} - {self.body[:200]}"


class TransportClosedError(VoiceGatewayError):
    """The transport went away while sending."""

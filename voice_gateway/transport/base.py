"""Outbound transport interface."""

from abc import ABC, abstractmethod


class Transport(ABC):
    """The send side of one client connection."""

    @abstractmethod
    async def send_json(self, frame: dict) -> None:
        """
        Send one JSON text frame.

        Raises:
            TransportClosedError: If the connection is gone
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection if still open."""
        pass

"""Persistence gateways."""

from voice_gateway.config import Settings
from voice_gateway.persistence.base import PersistenceGateway
from voice_gateway.persistence.http import HttpPersistenceGateway
from voice_gateway.persistence.memory import InMemoryPersistenceGateway


def create_gateway(settings: Settings) -> PersistenceGateway:
    """Build the gateway selected by `persistence_backend`."""
    if settings.persistence_backend == "http":
        return HttpPersistenceGateway(settings)
    return InMemoryPersistenceGateway()


__all__ = [
    "PersistenceGateway",
    "HttpPersistenceGateway",
    "InMemoryPersistenceGateway",
    "create_gateway",
]

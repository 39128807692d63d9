"""Client-side shim: drive a chain through a remote backend with pacing."""

from corpsebeats.core.client.pacing import RequestPacer
from corpsebeats.core.client.remote import RemoteGateway, map_backend_error

__all__ = [
    "RequestPacer",
    "RemoteGateway",
    "map_backend_error",
]

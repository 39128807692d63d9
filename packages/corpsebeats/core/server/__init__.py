"""HTTP surface for the generation operations and streamed chain runs."""

from corpsebeats.core.server.app import create_app

__all__ = ["create_app"]

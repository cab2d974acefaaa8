"""Media server adapters.

Public API:
    MediaSourceProtocol - Backend adapter abstraction
    PlexClient - Plex Media Server adapter
    JellyfinClient - Jellyfin adapter

Internal (not exported):
    http.py - httpx transport with error mapping
    normalize.py - Codec, container, rating and unit normalization
"""

from kino.sources.base import MediaSourceProtocol
from kino.sources.jellyfin import JellyfinClient
from kino.sources.plex import PlexClient

__all__ = [
    "JellyfinClient",
    "MediaSourceProtocol",
    "PlexClient",
]

"""Authentication flows.

Public API:
    AuthFlowProtocol - Authentication strategy abstraction
    AuthResult - Token and user produced by a flow
    PlexPinAuthFlow - Plex PIN (device) flow
    JellyfinAuthFlow - Jellyfin username/password exchange
"""

from kino.auth.base import AuthFlowProtocol, AuthResult
from kino.auth.jellyfin import JellyfinAuthFlow
from kino.auth.plex import PlexPinAuthFlow

__all__ = [
    "AuthFlowProtocol",
    "AuthResult",
    "JellyfinAuthFlow",
    "PlexPinAuthFlow",
]

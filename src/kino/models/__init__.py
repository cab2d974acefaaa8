"""Data models for kino.

Public API:
    Library, MediaItem, Show, Season, Playlist - Backend-neutral entities
    LibraryContent - Movie-or-show variant for mixed libraries
    Page - One page of a paginated listing
    SyncState - Per-library sync progress
    CancelToken - Cooperative cancellation

Internal (not exported):
    plex.py - Models for parsing Plex responses
    jellyfin.py - Models for parsing Jellyfin responses
"""

from kino.models.cancel import CancelToken
from kino.models.domain import (
    Library,
    LibraryContent,
    MediaItem,
    Page,
    Playlist,
    Season,
    Show,
)
from kino.models.enums import (
    LibraryType,
    MediaType,
    PinAuthState,
    SyncStatus,
    WatchStatus,
)
from kino.models.sync import SyncState

__all__ = [
    "CancelToken",
    "Library",
    "LibraryContent",
    "LibraryType",
    "MediaItem",
    "MediaType",
    "Page",
    "PinAuthState",
    "Playlist",
    "Season",
    "Show",
    "SyncState",
    "SyncStatus",
    "WatchStatus",
]

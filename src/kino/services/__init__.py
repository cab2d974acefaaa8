"""Business logic services for kino.

Public API:
    MediaSource - Backend-neutral facade over one adapter
    detect_source_type - Tell Plex and Jellyfin servers apart by URL
    LibrarySyncEngine - Concurrent paginated library sync
    LibraryFilter - Local fuzzy filter over synced items
    SyncStateStore - Thread-safe per-library progress store

Protocols (for dependency injection):
    SnapshotStoreProtocol - Snapshot persistence abstraction

Implementations:
    JsonSnapshotStore - One atomic JSON file per library
    MemorySnapshotStore - In-process snapshots
"""

from kino.services.filter import FilterResult, LibraryFilter, NavigationContext
from kino.services.media_source import (
    MediaSource,
    create_media_source,
    detect_source_type,
)
from kino.services.snapshots import (
    JsonSnapshotStore,
    LibrarySnapshot,
    MemorySnapshotStore,
    SnapshotStoreProtocol,
)
from kino.services.state_store import SyncStateStore
from kino.services.sync import LibrarySyncEngine

__all__ = [
    "FilterResult",
    "JsonSnapshotStore",
    "LibraryFilter",
    "LibrarySnapshot",
    "LibrarySyncEngine",
    "MediaSource",
    "MemorySnapshotStore",
    "NavigationContext",
    "SnapshotStoreProtocol",
    "SyncStateStore",
    "create_media_source",
    "detect_source_type",
]

"""kino - Browse and sync Plex and Jellyfin libraries through one model.

This library hides the differences between Plex and Jellyfin behind a
single domain model (libraries, movies, shows, seasons, episodes,
playlists) and provides a concurrent sync engine with per-library
progress, snapshot fallback and failure isolation.

Designed for use as a library in terminal or web front-ends, with a
CLI for debugging and development.

Examples:
    Sync every library of a Plex server:
    ```python
    from kino import SourceConfig, create_media_source, create_sync_engine

    source = create_media_source(SourceConfig(type="plex", url=url, token=token))
    engine = create_sync_engine(source)
    states = engine.sync_all()
    ```

    Log in to Jellyfin:
    ```python
    from kino import create_auth_flow

    flow = create_auth_flow("jellyfin", credentials=lambda: ("alice", "secret"))
    result = flow.run("http://localhost:8096")
    ```
"""

from collections.abc import Callable
from pathlib import Path

import httpx

from kino.auth import AuthFlowProtocol, AuthResult, JellyfinAuthFlow, PlexPinAuthFlow
from kino.auth.jellyfin import CredentialsProvider
from kino.config import PinAuthConfig, SourceConfig, SourceType, SyncConfig
from kino.exceptions import (
    AuthError,
    CancellationError,
    ConfigError,
    ExpiredError,
    IdentityUnavailableError,
    KinoError,
    NotFoundError,
    PartialSyncError,
    PlaylistSeedRequiredError,
    ResponseParseError,
    ServerOfflineError,
    TransportError,
)
from kino.models import (
    CancelToken,
    Library,
    LibraryContent,
    LibraryType,
    MediaItem,
    MediaType,
    Page,
    PinAuthState,
    Playlist,
    Season,
    Show,
    SyncState,
    SyncStatus,
    WatchStatus,
)
from kino.models.plex import PlexPin
from kino.services import (
    FilterResult,
    JsonSnapshotStore,
    LibraryFilter,
    LibrarySyncEngine,
    MediaSource,
    MemorySnapshotStore,
    NavigationContext,
    SnapshotStoreProtocol,
    SyncStateStore,
    create_media_source,
    detect_source_type,
)
from kino.services.sync import ProgressCallback
from kino.sources import JellyfinClient, MediaSourceProtocol, PlexClient


def create_sync_engine(
    source: MediaSource,
    config: SyncConfig | None = None,
    cache_dir: Path | None = None,
    on_progress: ProgressCallback | None = None,
) -> LibrarySyncEngine:
    """Create a sync engine for a media source.

    Args:
        source: Media source created by create_media_source().
        config: Optional sync configuration. Uses defaults if not provided.
        cache_dir: Directory for library snapshots. Snapshots are kept in
            memory only when omitted.
        on_progress: Optional callback receiving (library_id, SyncState).

    Returns:
        A configured LibrarySyncEngine.

    Examples:
        With on-disk snapshots:
        ```python
        engine = create_sync_engine(source, cache_dir=Path("~/.cache/kino"))
        engine.sync_all()
        ```
    """
    snapshots: SnapshotStoreProtocol
    if cache_dir is not None:
        snapshots = JsonSnapshotStore(cache_dir.expanduser(), source.server_url)
    else:
        snapshots = MemorySnapshotStore()
    return LibrarySyncEngine(
        source, snapshots=snapshots, config=config, on_progress=on_progress
    )


def create_auth_flow(
    source_type: SourceType | str,
    *,
    on_pin: Callable[[PlexPin], None] | None = None,
    credentials: CredentialsProvider | None = None,
    pin_config: PinAuthConfig | None = None,
    http_client: httpx.Client | None = None,
) -> AuthFlowProtocol:
    """Create the authentication flow for a backend.

    Args:
        source_type: Backend to authenticate against.
        on_pin: Plex only. Receives the PIN to display to the user.
        credentials: Jellyfin only. Returns (username, password).
        pin_config: Plex only. PIN polling cadence.
        http_client: Optional httpx client.

    Returns:
        PlexPinAuthFlow or JellyfinAuthFlow.

    Raises:
        ConfigError: If the type is unknown or Jellyfin credentials are missing.
    """
    try:
        resolved = SourceType(source_type)
    except ValueError as e:
        raise ConfigError(f"Unknown server type: {source_type!r}") from e

    match resolved:
        case SourceType.PLEX:
            return PlexPinAuthFlow(
                config=pin_config, http_client=http_client, on_pin=on_pin
            )
        case SourceType.JELLYFIN:
            if credentials is None:
                raise ConfigError("Jellyfin login requires a credentials provider")
            return JellyfinAuthFlow(credentials, http_client=http_client)


__all__ = [
    "AuthError",
    "AuthFlowProtocol",
    "AuthResult",
    "CancelToken",
    "CancellationError",
    "ConfigError",
    "ExpiredError",
    "FilterResult",
    "IdentityUnavailableError",
    "JellyfinAuthFlow",
    "JellyfinClient",
    "JsonSnapshotStore",
    "KinoError",
    "Library",
    "LibraryContent",
    "LibraryFilter",
    "LibrarySyncEngine",
    "LibraryType",
    "MediaItem",
    "MediaSource",
    "MediaSourceProtocol",
    "MediaType",
    "MemorySnapshotStore",
    "NavigationContext",
    "NotFoundError",
    "Page",
    "PartialSyncError",
    "PinAuthConfig",
    "PinAuthState",
    "Playlist",
    "PlaylistSeedRequiredError",
    "PlexClient",
    "PlexPinAuthFlow",
    "ResponseParseError",
    "Season",
    "ServerOfflineError",
    "Show",
    "SourceConfig",
    "SourceType",
    "SyncConfig",
    "SyncState",
    "SyncStateStore",
    "SyncStatus",
    "TransportError",
    "WatchStatus",
    "create_auth_flow",
    "create_media_source",
    "create_sync_engine",
    "detect_source_type",
]

"""MediaSource facade.

The only place in kino that branches on the backend type: it validates a
SourceConfig, builds the matching adapter, probes the server identity,
and then simply delegates.
"""

import logging

import httpx

from kino.config import PROBE_TIMEOUT, SourceConfig, SourceType
from kino.exceptions import ConfigError, KinoError
from kino.models.domain import (
    Library,
    LibraryContent,
    MediaItem,
    Page,
    Playlist,
    Season,
    Show,
)
from kino.models.jellyfin import JellyfinSystemInfo
from kino.sources.base import MediaSourceProtocol
from kino.sources.http import HttpTransport
from kino.sources.jellyfin import JellyfinClient
from kino.sources.plex import PlexClient

logger = logging.getLogger(__name__)


def validate_source_config(config: SourceConfig) -> SourceType:
    """Check a configuration without touching the network.

    Returns:
        The validated backend type.

    Raises:
        ConfigError: If a required field is missing or the type is unknown.
    """
    try:
        source_type = SourceType(config.type)
    except ValueError as e:
        supported = ", ".join(t.value for t in SourceType)
        raise ConfigError(
            f"Unknown server type: {config.type!r} (expected one of: {supported})"
        ) from e

    if not config.url or not config.url.strip():
        raise ConfigError("Server URL is required")
    if not config.token or not config.token.strip():
        raise ConfigError("Access token is required; log in first")
    if source_type == SourceType.JELLYFIN and not config.user_id:
        raise ConfigError("Jellyfin requires a user id; log in first")
    return source_type


class MediaSource:
    """Backend-neutral media source.

    Wraps exactly one adapter and forwards every operation to it.
    Implements MediaSourceProtocol.

    Attributes:
        identity: Server identifier from the creation probe, or None if the
            probe failed. Reads work without it; Plex playlist writes don't.
    """

    def __init__(
        self,
        adapter: MediaSourceProtocol,
        config: SourceConfig,
        identity: str | None = None,
    ) -> None:
        self._adapter = adapter
        self._config = config
        self.identity = identity

    @property
    def source_type(self) -> SourceType:
        return self._adapter.source_type

    @property
    def server_url(self) -> str:
        return self._config.url.rstrip("/")

    @property
    def username(self) -> str | None:
        return self._config.username

    @property
    def adapter(self) -> MediaSourceProtocol:
        return self._adapter

    def probe_identity(self, timeout: float = PROBE_TIMEOUT) -> str | None:
        """Fetch the server identity, recording None on failure."""
        try:
            self.identity = self._adapter.fetch_identity(timeout=timeout)
        except KinoError as e:
            logger.warning(
                "Could not fetch %s server identity from %s: %s",
                self.source_type,
                self.server_url,
                e,
            )
            self.identity = None
        return self.identity

    def close(self) -> None:
        self._adapter.close()

    # -------------------------------------------------------------------------
    # Delegated operations
    # -------------------------------------------------------------------------

    def fetch_identity(self, timeout: float | None = None) -> str:
        self.identity = self._adapter.fetch_identity(timeout=timeout)
        return self.identity

    def get_libraries(self) -> list[Library]:
        return self._adapter.get_libraries()

    def get_movies(self, library_id: str, offset: int, limit: int) -> Page[MediaItem]:
        return self._adapter.get_movies(library_id, offset, limit)

    def get_shows(self, library_id: str, offset: int, limit: int) -> Page[Show]:
        return self._adapter.get_shows(library_id, offset, limit)

    def get_mixed_content(
        self, library_id: str, offset: int, limit: int
    ) -> Page[LibraryContent]:
        return self._adapter.get_mixed_content(library_id, offset, limit)

    def get_seasons(self, show_id: str) -> list[Season]:
        return self._adapter.get_seasons(show_id)

    def get_episodes(self, season_id: str) -> list[MediaItem]:
        return self._adapter.get_episodes(season_id)

    def get_media_item(self, item_id: str) -> MediaItem:
        return self._adapter.get_media_item(item_id)

    def get_next_episode(self, episode_id: str) -> MediaItem:
        return self._adapter.get_next_episode(episode_id)

    def search(self, query: str) -> list[MediaItem]:
        return self._adapter.search(query)

    def resolve_playable_url(self, item_id: str) -> str:
        return self._adapter.resolve_playable_url(item_id)

    def mark_played(self, item_id: str) -> None:
        self._adapter.mark_played(item_id)

    def mark_unplayed(self, item_id: str) -> None:
        self._adapter.mark_unplayed(item_id)

    def get_playlists(self) -> list[Playlist]:
        return self._adapter.get_playlists()

    def get_playlist_items(self, playlist_id: str) -> list[MediaItem]:
        return self._adapter.get_playlist_items(playlist_id)

    def create_playlist(self, title: str, item_ids: list[str]) -> Playlist:
        return self._adapter.create_playlist(title, item_ids)

    def add_to_playlist(self, playlist_id: str, item_ids: list[str]) -> None:
        self._adapter.add_to_playlist(playlist_id, item_ids)

    def remove_from_playlist(self, playlist_id: str, item_id: str) -> None:
        self._adapter.remove_from_playlist(playlist_id, item_id)

    def delete_playlist(self, playlist_id: str) -> None:
        self._adapter.delete_playlist(playlist_id)


def build_adapter(
    config: SourceConfig, http_client: httpx.Client | None = None
) -> MediaSourceProtocol:
    """Validate a configuration and construct the matching adapter."""
    source_type = validate_source_config(config)
    match source_type:
        case SourceType.PLEX:
            return PlexClient(config.url, config.token, http_client=http_client)
        case SourceType.JELLYFIN:
            return JellyfinClient(
                config.url,
                config.token,
                config.user_id or "",
                http_client=http_client,
            )


def create_media_source(
    config: SourceConfig,
    *,
    http_client: httpx.Client | None = None,
    probe: bool = True,
    probe_timeout: float = PROBE_TIMEOUT,
) -> MediaSource:
    """Create a media source for the configured backend.

    Args:
        config: Server connection settings.
        http_client: Optional httpx client shared by every request.
        probe: Whether to fetch the server identity right away.
        probe_timeout: Timeout of the identity probe in seconds.

    Returns:
        A MediaSource. Identity probe failures are logged and leave
        identity as None rather than failing creation.

    Raises:
        ConfigError: If the configuration is invalid. No request is made.
    """
    adapter = build_adapter(config, http_client)
    source = MediaSource(adapter, config)
    if probe:
        source.probe_identity(probe_timeout)
    logger.debug(
        "Created %s media source for %s", source.source_type, source.server_url
    )
    return source


def detect_source_type(
    url: str,
    *,
    http_client: httpx.Client | None = None,
    timeout: float = PROBE_TIMEOUT,
) -> SourceType:
    """Work out which backend answers at url, without credentials.

    Jellyfin's /System/Info/Public is tried first and only counts when its
    ProductName names Jellyfin. Plex's /identity is tried next.

    Raises:
        ConfigError: If neither backend is recognized.
    """
    url = url.strip().rstrip("/")
    if not url:
        raise ConfigError("Server URL is required")

    http = HttpTransport(url, client=http_client, timeout=timeout)
    try:
        info = http.get_model("/System/Info/Public", JellyfinSystemInfo)
        if "jellyfin" in (info.product_name or "").lower():
            logger.debug("Detected Jellyfin at %s", url)
            return SourceType.JELLYFIN
        jellyfin_error = f"not a Jellyfin server (ProductName: {info.product_name})"
    except KinoError as e:
        jellyfin_error = str(e)
    finally:
        http.close()

    plex = PlexClient(url, "", http_client=http_client, timeout=timeout)
    try:
        plex.fetch_identity()
        logger.debug("Detected Plex at %s", url)
        return SourceType.PLEX
    except KinoError as e:
        plex_error = str(e)
    finally:
        plex.close()

    raise ConfigError(
        f"Could not detect server type at {url}: "
        f"tried Jellyfin ({jellyfin_error}), Plex ({plex_error})"
    )

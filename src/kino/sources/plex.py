"""Plex Media Server adapter."""

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from kino.config import (
    CLIENT_IDENTIFIER,
    CLIENT_PRODUCT,
    CLIENT_VERSION,
    HTTP_TIMEOUT,
    SourceType,
)
from kino.exceptions import (
    IdentityUnavailableError,
    NotFoundError,
    PlaylistSeedRequiredError,
    ResponseParseError,
)
from kino.models.domain import (
    Library,
    LibraryContent,
    MediaItem,
    Page,
    Playlist,
    Season,
    Show,
)
from kino.models.enums import LibraryType, MediaType
from kino.models.plex import PlexEnvelope, PlexMediaContainer, PlexMetadata
from kino.sources.base import next_in_season
from kino.sources.http import HttpTransport, decode_json, parse_model
from kino.sources.normalize import (
    normalize_audio_codec,
    normalize_container,
    normalize_content_rating,
    normalize_video_codec,
)

logger = logging.getLogger(__name__)

_LIBRARY_TYPES = {"movie": LibraryType.MOVIE, "show": LibraryType.SHOW}

# Plex metadata types that are playable items
_PLAYABLE_TYPES = frozenset({"movie", "episode"})

_LIBRARY_PROVIDER = "com.plexapp.plugins.library"


def plex_headers(token: str | None = None) -> dict[str, str]:
    """Build the client identification headers Plex expects."""
    headers = {
        "Accept": "application/json",
        "X-Plex-Client-Identifier": CLIENT_IDENTIFIER,
        "X-Plex-Product": CLIENT_PRODUCT,
        "X-Plex-Version": CLIENT_VERSION,
        "User-Agent": f"{CLIENT_PRODUCT}/{CLIENT_VERSION}",
    }
    if token:
        headers["X-Plex-Token"] = token
    return headers


def _page_params(offset: int, limit: int) -> dict[str, Any]:
    params: dict[str, Any] = {"X-Plex-Container-Start": offset}
    if limit > 0:
        params["X-Plex-Container-Size"] = limit
    return params


def _unwatched(meta: PlexMetadata) -> int:
    return (meta.leaf_count or 0) - (meta.viewed_leaf_count or 0)


class PlexClient:
    """Plex Media Server client.

    Translates the MediaContainer JSON envelope into domain models.
    Implements MediaSourceProtocol.

    Playlist writes reference items through a server:// URI built from the
    server's machine identifier. Call fetch_identity() (the facade does this
    on creation) or pass machine_identifier before using them.
    """

    source_type = SourceType.PLEX

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        http_client: httpx.Client | None = None,
        timeout: float = HTTP_TIMEOUT,
        machine_identifier: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server URL, e.g. http://localhost:32400.
            token: Plex access token.
            http_client: Optional httpx client. Creates one if not provided.
            timeout: Default request timeout in seconds.
            machine_identifier: Known server identity, if any.
        """
        self._token = token
        self._http = HttpTransport(
            base_url, plex_headers(token), client=http_client, timeout=timeout
        )
        self.machine_identifier = machine_identifier

    @property
    def base_url(self) -> str:
        return self._http.base_url

    def close(self) -> None:
        self._http.close()

    # -------------------------------------------------------------------------
    # Identity & libraries
    # -------------------------------------------------------------------------

    def fetch_identity(self, timeout: float | None = None) -> str:
        """Fetch the server's machineIdentifier from /identity.

        The endpoint answers XML on most servers and JSON when the Accept
        header is honored; both are handled.

        Raises:
            ResponseParseError: If the body has no machineIdentifier.
        """
        response = self._http.request("GET", "/identity", timeout=timeout)
        body = response.text.lstrip()
        if body.startswith("<"):
            try:
                machine_id = ET.fromstring(body).get("machineIdentifier")
            except ET.ParseError as e:
                raise ResponseParseError(f"Invalid identity XML: {e}") from e
        else:
            envelope = parse_model(PlexEnvelope, decode_json(response))
            machine_id = envelope.media_container.machine_identifier

        if not machine_id:
            raise ResponseParseError("Identity response has no machineIdentifier")
        self.machine_identifier = machine_id
        logger.debug("Plex machine identifier: %s", machine_id)
        return machine_id

    def get_libraries(self) -> list[Library]:
        """List movie and show libraries. Music and photo sections are skipped."""
        container = self._container("/library/sections")
        libraries = []
        for directory in container.directories:
            library_type = _LIBRARY_TYPES.get(directory.type)
            if library_type is None:
                logger.debug(
                    "Skipping %s library: %s", directory.type, directory.title
                )
                continue
            libraries.append(
                Library(
                    id=directory.key,
                    name=directory.title,
                    type=library_type,
                    updated_at=directory.content_changed_at
                    or directory.updated_at
                    or 0,
                )
            )
        return libraries

    # -------------------------------------------------------------------------
    # Paginated listings
    # -------------------------------------------------------------------------

    def get_movies(self, library_id: str, offset: int, limit: int) -> Page[MediaItem]:
        container = self._section_page(library_id, offset, limit)
        items = [self._to_media_item(m, library_id) for m in container.metadata]
        return Page(items=items, total=container.reported_total)

    def get_shows(self, library_id: str, offset: int, limit: int) -> Page[Show]:
        container = self._section_page(library_id, offset, limit)
        items = [self._to_show(m, library_id) for m in container.metadata]
        return Page(items=items, total=container.reported_total)

    def get_mixed_content(
        self, library_id: str, offset: int, limit: int
    ) -> Page[LibraryContent]:
        container = self._section_page(library_id, offset, limit)
        items: list[LibraryContent] = []
        for meta in container.metadata:
            if meta.type == "show":
                items.append(self._to_show(meta, library_id))
            else:
                items.append(self._to_media_item(meta, library_id))
        return Page(items=items, total=container.reported_total)

    def _section_page(
        self, library_id: str, offset: int, limit: int
    ) -> PlexMediaContainer:
        return self._container(
            f"/library/sections/{library_id}/all", _page_params(offset, limit)
        )

    # -------------------------------------------------------------------------
    # Hierarchy & items
    # -------------------------------------------------------------------------

    def get_seasons(self, show_id: str) -> list[Season]:
        container = self._container(f"/library/metadata/{show_id}/children")
        return [
            self._to_season(m, show_id)
            for m in container.metadata
            if m.type in ("season", "")
        ]

    def get_episodes(self, season_id: str) -> list[MediaItem]:
        container = self._container(f"/library/metadata/{season_id}/children")
        return [self._to_media_item(m) for m in container.metadata]

    def get_media_item(self, item_id: str) -> MediaItem:
        return self._to_media_item(self._metadata(item_id))

    def get_next_episode(self, episode_id: str) -> MediaItem:
        """Resolve the next episode within the same season.

        Raises:
            NotFoundError: If the item is not an episode or ends its season.
        """
        current = self.get_media_item(episode_id)
        if not current.season_id:
            raise NotFoundError(f"Item {episode_id} is not an episode of a season")
        return next_in_season(current, self.get_episodes(current.season_id))

    def search(self, query: str) -> list[MediaItem]:
        container = self._container("/search", {"query": query})
        return [
            self._to_media_item(m)
            for m in container.metadata
            if m.type in _PLAYABLE_TYPES
        ]

    def resolve_playable_url(self, item_id: str) -> str:
        """Resolve a direct-play URL for the item's first media part.

        Raises:
            NotFoundError: If the item has no media part.
        """
        meta = self._metadata(item_id)
        part_key = ""
        if meta.media and meta.media[0].parts:
            part_key = meta.media[0].parts[0].key
        if not part_key:
            raise NotFoundError(f"No playable media for item: {item_id}")
        return f"{self.base_url}{part_key}?X-Plex-Token={self._token}"

    def mark_played(self, item_id: str) -> None:
        self._http.request(
            "GET",
            "/:/scrobble",
            params={"key": item_id, "identifier": _LIBRARY_PROVIDER},
        )

    def mark_unplayed(self, item_id: str) -> None:
        self._http.request(
            "GET",
            "/:/unscrobble",
            params={"key": item_id, "identifier": _LIBRARY_PROVIDER},
        )

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    def get_playlists(self) -> list[Playlist]:
        container = self._container("/playlists", {"playlistType": "video"})
        return [self._to_playlist(m) for m in container.metadata]

    def get_playlist_items(self, playlist_id: str) -> list[MediaItem]:
        container = self._container(f"/playlists/{playlist_id}/items")
        return [self._to_media_item(m) for m in container.metadata]

    def create_playlist(self, title: str, item_ids: list[str]) -> Playlist:
        """Create a video playlist seeded with items.

        Raises:
            PlaylistSeedRequiredError: If item_ids is empty. Plex cannot
                create empty playlists; no request is made.
            IdentityUnavailableError: If the machine identifier is unknown.
        """
        if not item_ids:
            raise PlaylistSeedRequiredError(
                "Plex requires at least one item to create a playlist"
            )
        uri = self._items_uri(item_ids)
        response = self._http.request(
            "POST",
            "/playlists",
            params={"type": "video", "title": title, "smart": 0, "uri": uri},
        )
        envelope = parse_model(PlexEnvelope, decode_json(response))
        if not envelope.media_container.metadata:
            raise ResponseParseError(f"Playlist creation returned nothing: {title}")
        playlist = self._to_playlist(envelope.media_container.metadata[0])
        logger.info("Created playlist %s (%s)", playlist.title, playlist.id)
        return playlist

    def add_to_playlist(self, playlist_id: str, item_ids: list[str]) -> None:
        """Append items, one request per item."""
        for item_id in item_ids:
            self._http.request(
                "PUT",
                f"/playlists/{playlist_id}/items",
                params={"uri": self._items_uri([item_id])},
            )

    def remove_from_playlist(self, playlist_id: str, item_id: str) -> None:
        """Remove an item from a playlist.

        Plex deletes playlist entries by their playlistItemID, so the entry
        for the item is looked up first.

        Raises:
            NotFoundError: If the item is not in the playlist.
        """
        container = self._container(f"/playlists/{playlist_id}/items")
        entry_id = next(
            (
                m.playlist_item_id
                for m in container.metadata
                if m.rating_key == item_id and (m.playlist_item_id or 0) > 0
            ),
            None,
        )
        if entry_id is None:
            raise NotFoundError(f"Item {item_id} not found in playlist {playlist_id}")
        self._http.request("DELETE", f"/playlists/{playlist_id}/items/{entry_id}")

    def delete_playlist(self, playlist_id: str) -> None:
        self._http.request("DELETE", f"/playlists/{playlist_id}")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _container(
        self, path: str, params: dict[str, Any] | None = None
    ) -> PlexMediaContainer:
        envelope = self._http.get_model(path, PlexEnvelope, params=params)
        return envelope.media_container

    def _metadata(self, item_id: str) -> PlexMetadata:
        container = self._container(f"/library/metadata/{item_id}")
        if not container.metadata:
            raise NotFoundError(f"Item not found: {item_id}")
        return container.metadata[0]

    def _items_uri(self, item_ids: list[str]) -> str:
        if not self.machine_identifier:
            raise IdentityUnavailableError(
                "Plex server identity is unknown; cannot reference library items"
            )
        return (
            f"server://{self.machine_identifier}/{_LIBRARY_PROVIDER}"
            f"/library/metadata/{','.join(item_ids)}"
        )

    def _to_media_item(self, meta: PlexMetadata, library_id: str = "") -> MediaItem:
        media = meta.media[0] if meta.media else None
        part = media.parts[0] if media and media.parts else None
        is_episode = meta.type == "episode"
        return MediaItem(
            id=meta.rating_key,
            title=meta.title,
            sort_title=meta.title_sort or "",
            library_id=meta.library_section_id or library_id,
            type=MediaType.EPISODE if is_episode else MediaType.MOVIE,
            year=meta.year or 0,
            duration_ms=meta.duration or 0,
            view_offset_ms=meta.view_offset or 0,
            is_played=(meta.view_count or 0) > 0,
            rating=meta.audience_rating or meta.rating or 0.0,
            content_rating=normalize_content_rating(meta.content_rating),
            video_codec=normalize_video_codec(media.video_codec if media else None),
            audio_codec=normalize_audio_codec(media.audio_codec if media else None),
            container=normalize_container(media.container if media else None),
            file_size=(part.size or 0) if part else 0,
            summary=meta.summary or "",
            added_at=meta.added_at or 0,
            show_id=(meta.grandparent_rating_key or "") if is_episode else "",
            show_title=(meta.grandparent_title or "") if is_episode else "",
            season_id=(meta.parent_rating_key or "") if is_episode else "",
            season_num=(meta.parent_index or 0) if is_episode else 0,
            episode_num=(meta.index or 0) if is_episode else 0,
        )

    def _to_show(self, meta: PlexMetadata, library_id: str = "") -> Show:
        return Show(
            id=meta.rating_key,
            title=meta.title,
            sort_title=meta.title_sort or "",
            library_id=meta.library_section_id or library_id,
            year=meta.year or 0,
            season_count=meta.child_count or 0,
            episode_count=meta.leaf_count or 0,
            unwatched_count=_unwatched(meta),
            rating=meta.audience_rating or meta.rating or 0.0,
            content_rating=normalize_content_rating(meta.content_rating),
            summary=meta.summary or "",
            added_at=meta.added_at or 0,
        )

    def _to_season(self, meta: PlexMetadata, show_id: str) -> Season:
        return Season(
            id=meta.rating_key,
            show_id=meta.parent_rating_key or show_id,
            show_title=meta.parent_title or "",
            season_num=meta.index or 0,
            title=meta.title,
            episode_count=meta.leaf_count or 0,
            unwatched_count=_unwatched(meta),
        )

    def _to_playlist(self, meta: PlexMetadata) -> Playlist:
        return Playlist(
            id=meta.rating_key,
            title=meta.title,
            playlist_type=meta.playlist_type or "video",
            smart=meta.smart,
            item_count=meta.leaf_count or 0,
            duration_ms=meta.duration or 0,
        )

"""Jellyfin server adapter."""

import logging
from typing import Any

import httpx

from kino.config import (
    CLIENT_DEVICE,
    CLIENT_IDENTIFIER,
    CLIENT_PRODUCT,
    HTTP_TIMEOUT,
    SourceType,
)
from kino.exceptions import NotFoundError
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
from kino.models.jellyfin import (
    JellyfinCreatedPlaylist,
    JellyfinItem,
    JellyfinItemsResponse,
    JellyfinPlaybackInfo,
    JellyfinSearchHint,
    JellyfinSearchResponse,
    JellyfinSystemInfo,
)
from kino.sources.base import next_in_season
from kino.sources.http import HttpTransport, decode_json, parse_model
from kino.sources.normalize import (
    normalize_audio_codec,
    normalize_container,
    normalize_content_rating,
    normalize_video_codec,
    parse_timestamp,
    ticks_to_ms,
)

logger = logging.getLogger(__name__)

JELLYFIN_CLIENT_VERSION = "1.0.0"

# CollectionType -> library type. Absent/empty means a mixed library.
_LIBRARY_TYPES = {
    "movies": LibraryType.MOVIE,
    "tvshows": LibraryType.SHOW,
    "mixed": LibraryType.MIXED,
    "": LibraryType.MIXED,
}

_ITEM_FIELDS = (
    "SortName,Overview,DateCreated,MediaSources,MediaStreams,"
    "ChildCount,RecursiveItemCount,OfficialRating,CommunityRating"
)
_EPISODE_FIELDS = "Overview,MediaSources,MediaStreams,DateCreated"
_SEARCH_LIMIT = 50
_MAX_STREAMING_BITRATE = 140_000_000


def jellyfin_auth_header(token: str | None = None) -> dict[str, str]:
    """Build the X-Emby-Authorization header, with the token when known."""
    value = (
        f'MediaBrowser Client="{CLIENT_PRODUCT}", Device="{CLIENT_DEVICE}", '
        f'DeviceId="{CLIENT_IDENTIFIER}", Version="{JELLYFIN_CLIENT_VERSION}"'
    )
    if token:
        value += f', Token="{token}"'
    return {"Accept": "application/json", "X-Emby-Authorization": value}


def _stream_codec(item: JellyfinItem, stream_type: str) -> str | None:
    streams = item.media_sources[0].media_streams if item.media_sources else []
    for stream in streams or item.media_streams:
        if stream.type == stream_type:
            return stream.codec
    return None


def _unwatched(item: JellyfinItem, total: int) -> int:
    if item.user_data.unplayed_item_count is not None:
        return item.user_data.unplayed_item_count
    return 0 if item.user_data.played else total


class JellyfinClient:
    """Jellyfin server client.

    Translates the Items API into domain models. All user-scoped calls go
    through /Users/{user_id}. Implements MediaSourceProtocol.
    """

    source_type = SourceType.JELLYFIN

    def __init__(
        self,
        base_url: str,
        token: str,
        user_id: str,
        *,
        http_client: httpx.Client | None = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server URL, e.g. http://localhost:8096.
            token: Jellyfin access token.
            user_id: Id of the authenticated user.
            http_client: Optional httpx client. Creates one if not provided.
            timeout: Default request timeout in seconds.
        """
        self._token = token
        self._user_id = user_id
        self._http = HttpTransport(
            base_url,
            jellyfin_auth_header(token),
            client=http_client,
            timeout=timeout,
        )

    @property
    def base_url(self) -> str:
        return self._http.base_url

    def close(self) -> None:
        self._http.close()

    # -------------------------------------------------------------------------
    # Identity & libraries
    # -------------------------------------------------------------------------

    def fetch_identity(self, timeout: float | None = None) -> str:
        info = self._http.get_model(
            "/System/Info/Public", JellyfinSystemInfo, timeout=timeout
        )
        logger.debug("Jellyfin server %s (%s)", info.server_name, info.id)
        return info.id

    def get_libraries(self) -> list[Library]:
        """List user views. Music, books and other collection types are skipped."""
        response = self._http.get_model(
            f"/Users/{self._user_id}/Views", JellyfinItemsResponse
        )
        libraries = []
        for view in response.items:
            library_type = _LIBRARY_TYPES.get(view.collection_type or "")
            if library_type is None:
                logger.debug("Skipping %s library: %s", view.collection_type, view.name)
                continue
            libraries.append(
                Library(
                    id=view.id,
                    name=view.name,
                    type=library_type,
                    updated_at=parse_timestamp(view.date_created),
                )
            )
        return libraries

    # -------------------------------------------------------------------------
    # Paginated listings
    # -------------------------------------------------------------------------

    def get_movies(self, library_id: str, offset: int, limit: int) -> Page[MediaItem]:
        response = self._items_page(library_id, "Movie", offset, limit)
        items = [self._to_media_item(i, library_id) for i in response.items]
        return Page(items=items, total=response.reported_total)

    def get_shows(self, library_id: str, offset: int, limit: int) -> Page[Show]:
        response = self._items_page(library_id, "Series", offset, limit)
        items = [self._to_show(i, library_id) for i in response.items]
        return Page(items=items, total=response.reported_total)

    def get_mixed_content(
        self, library_id: str, offset: int, limit: int
    ) -> Page[LibraryContent]:
        response = self._items_page(library_id, "Movie,Series", offset, limit)
        items: list[LibraryContent] = []
        for item in response.items:
            if item.type == "Series":
                items.append(self._to_show(item, library_id))
            else:
                items.append(self._to_media_item(item, library_id))
        return Page(items=items, total=response.reported_total)

    def _items_page(
        self, library_id: str, item_types: str, offset: int, limit: int
    ) -> JellyfinItemsResponse:
        params: dict[str, Any] = {
            "ParentId": library_id,
            "IncludeItemTypes": item_types,
            "Recursive": "true",
            "Fields": _ITEM_FIELDS,
            "StartIndex": offset,
            "SortBy": "SortName",
            "SortOrder": "Ascending",
        }
        if limit > 0:
            params["Limit"] = limit
        return self._http.get_model(
            f"/Users/{self._user_id}/Items", JellyfinItemsResponse, params=params
        )

    # -------------------------------------------------------------------------
    # Hierarchy & items
    # -------------------------------------------------------------------------

    def get_seasons(self, show_id: str) -> list[Season]:
        response = self._http.get_model(
            f"/Shows/{show_id}/Seasons",
            JellyfinItemsResponse,
            params={
                "UserId": self._user_id,
                "Fields": "ChildCount,RecursiveItemCount",
            },
        )
        return [self._to_season(i, show_id) for i in response.items]

    def get_episodes(self, season_id: str) -> list[MediaItem]:
        """List the episodes of a season.

        The episodes endpoint is keyed by series, so the season is looked up
        first to find its parent.

        Raises:
            NotFoundError: If the season has no parent series.
        """
        season = self._user_item(season_id)
        series_id = season.series_id or season.parent_id
        if not series_id:
            raise NotFoundError(f"Season {season_id} has no parent series")
        response = self._http.get_model(
            f"/Shows/{series_id}/Episodes",
            JellyfinItemsResponse,
            params={
                "SeasonId": season_id,
                "UserId": self._user_id,
                "Fields": _EPISODE_FIELDS,
                "SortBy": "IndexNumber",
            },
        )
        return [self._to_media_item(i) for i in response.items]

    def get_media_item(self, item_id: str) -> MediaItem:
        return self._to_media_item(self._user_item(item_id))

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
        response = self._http.get_model(
            "/Search/Hints",
            JellyfinSearchResponse,
            params={
                "searchTerm": query,
                "UserId": self._user_id,
                "IncludeItemTypes": "Movie,Episode",
                "Limit": _SEARCH_LIMIT,
            },
        )
        return [self._hint_to_media_item(h) for h in response.search_hints]

    def resolve_playable_url(self, item_id: str) -> str:
        """Resolve a static stream URL from the item's first media source.

        Raises:
            NotFoundError: If the item has no media sources.
        """
        info = self._http.get_model(
            f"/Items/{item_id}/PlaybackInfo",
            JellyfinPlaybackInfo,
            params={
                "UserId": self._user_id,
                "MaxStreamingBitrate": _MAX_STREAMING_BITRATE,
            },
        )
        if not info.media_sources:
            raise NotFoundError(f"No playable media for item: {item_id}")
        container = normalize_container(info.media_sources[0].container)
        stream = f"stream.{container}" if container else "stream"
        return (
            f"{self.base_url}/Videos/{item_id}/{stream}"
            f"?Static=true&api_key={self._token}"
        )

    def mark_played(self, item_id: str) -> None:
        self._http.request("POST", f"/Users/{self._user_id}/PlayedItems/{item_id}")

    def mark_unplayed(self, item_id: str) -> None:
        self._http.request("DELETE", f"/Users/{self._user_id}/PlayedItems/{item_id}")

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    def get_playlists(self) -> list[Playlist]:
        response = self._http.get_model(
            f"/Users/{self._user_id}/Items",
            JellyfinItemsResponse,
            params={
                "IncludeItemTypes": "Playlist",
                "Recursive": "true",
                "Fields": "ChildCount,DateCreated",
            },
        )
        return [
            Playlist(
                id=item.id,
                title=item.name,
                item_count=item.child_count or 0,
                duration_ms=ticks_to_ms(item.run_time_ticks),
            )
            for item in response.items
        ]

    def get_playlist_items(self, playlist_id: str) -> list[MediaItem]:
        response = self._http.get_model(
            f"/Playlists/{playlist_id}/Items",
            JellyfinItemsResponse,
            params={"UserId": self._user_id, "Fields": _EPISODE_FIELDS},
        )
        return [self._to_media_item(i) for i in response.items]

    def create_playlist(self, title: str, item_ids: list[str]) -> Playlist:
        """Create a playlist. Jellyfin accepts an empty seed list."""
        body: dict[str, Any] = {"Name": title, "UserId": self._user_id}
        if item_ids:
            body["Ids"] = list(item_ids)
        response = self._http.request("POST", "/Playlists", json=body)
        created = parse_model(JellyfinCreatedPlaylist, decode_json(response))
        logger.info("Created playlist %s (%s)", title, created.id)
        return Playlist(id=created.id, title=title, item_count=len(item_ids))

    def add_to_playlist(self, playlist_id: str, item_ids: list[str]) -> None:
        if not item_ids:
            return
        self._http.request(
            "POST",
            f"/Playlists/{playlist_id}/Items",
            params={"Ids": ",".join(item_ids), "UserId": self._user_id},
        )

    def remove_from_playlist(self, playlist_id: str, item_id: str) -> None:
        self._http.request(
            "DELETE",
            f"/Playlists/{playlist_id}/Items",
            params={"EntryIds": item_id},
        )

    def delete_playlist(self, playlist_id: str) -> None:
        self._http.request("DELETE", f"/Items/{playlist_id}")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _user_item(self, item_id: str) -> JellyfinItem:
        return self._http.get_model(
            f"/Users/{self._user_id}/Items/{item_id}", JellyfinItem
        )

    def _to_media_item(self, item: JellyfinItem, library_id: str = "") -> MediaItem:
        source = item.media_sources[0] if item.media_sources else None
        is_episode = item.type == "Episode"
        return MediaItem(
            id=item.id,
            title=item.name,
            sort_title=item.sort_name or "",
            library_id=library_id,
            type=MediaType.EPISODE if is_episode else MediaType.MOVIE,
            year=item.production_year or 0,
            duration_ms=ticks_to_ms(item.run_time_ticks),
            view_offset_ms=ticks_to_ms(item.user_data.playback_position_ticks),
            is_played=item.user_data.played,
            rating=item.community_rating or 0.0,
            content_rating=normalize_content_rating(item.official_rating),
            video_codec=normalize_video_codec(_stream_codec(item, "Video")),
            audio_codec=normalize_audio_codec(_stream_codec(item, "Audio")),
            container=normalize_container(source.container if source else None),
            file_size=(source.size or 0) if source else 0,
            summary=item.overview or "",
            added_at=parse_timestamp(item.date_created),
            show_id=item.series_id or "",
            show_title=item.series_name or "",
            season_id=item.season_id or "",
            season_num=(item.parent_index_number or 0) if is_episode else 0,
            episode_num=(item.index_number or 0) if is_episode else 0,
        )

    def _to_show(self, item: JellyfinItem, library_id: str = "") -> Show:
        episodes = item.recursive_item_count or 0
        return Show(
            id=item.id,
            title=item.name,
            sort_title=item.sort_name or "",
            library_id=library_id,
            year=item.production_year or 0,
            season_count=item.child_count or 0,
            episode_count=episodes,
            unwatched_count=_unwatched(item, episodes),
            rating=item.community_rating or 0.0,
            content_rating=normalize_content_rating(item.official_rating),
            summary=item.overview or "",
            added_at=parse_timestamp(item.date_created),
        )

    def _to_season(self, item: JellyfinItem, show_id: str) -> Season:
        episodes = item.child_count or 0
        return Season(
            id=item.id,
            show_id=item.series_id or show_id,
            show_title=item.series_name or "",
            season_num=item.index_number or 0,
            title=item.name,
            episode_count=episodes,
            unwatched_count=_unwatched(item, episodes),
        )

    def _hint_to_media_item(self, hint: JellyfinSearchHint) -> MediaItem:
        is_episode = hint.type == "Episode"
        return MediaItem(
            id=hint.id,
            title=hint.name,
            type=MediaType.EPISODE if is_episode else MediaType.MOVIE,
            year=hint.production_year or 0,
            duration_ms=ticks_to_ms(hint.run_time_ticks),
            show_title=(hint.series or "") if is_episode else "",
            season_num=(hint.parent_index_number or 0) if is_episode else 0,
            episode_num=(hint.index_number or 0) if is_episode else 0,
        )

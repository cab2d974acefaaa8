"""Backend adapter protocol."""

from typing import Protocol

from kino.config import SourceType
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
from kino.models.enums import MediaType


class MediaSourceProtocol(Protocol):
    """Protocol for media server adapters.

    This protocol enables dependency injection and testing. Exactly two
    production implementations exist (PlexClient and JellyfinClient);
    implement it to create fake sources for tests.

    Paginated listings take an offset and a limit. A limit of 0 asks for
    the backend's default page size. The returned total is advisory.
    """

    source_type: SourceType

    def fetch_identity(self, timeout: float | None = None) -> str:
        """Fetch the server's unique identifier."""
        ...

    def get_libraries(self) -> list[Library]:
        """List movie, show and mixed libraries."""
        ...

    def get_movies(self, library_id: str, offset: int, limit: int) -> Page[MediaItem]:
        """Fetch one page of movies."""
        ...

    def get_shows(self, library_id: str, offset: int, limit: int) -> Page[Show]:
        """Fetch one page of shows."""
        ...

    def get_mixed_content(
        self, library_id: str, offset: int, limit: int
    ) -> Page[LibraryContent]:
        """Fetch one page of movies and shows from a mixed library."""
        ...

    def get_seasons(self, show_id: str) -> list[Season]:
        """List the seasons of a show."""
        ...

    def get_episodes(self, season_id: str) -> list[MediaItem]:
        """List the episodes of a season."""
        ...

    def get_media_item(self, item_id: str) -> MediaItem:
        """Fetch a single movie or episode."""
        ...

    def get_next_episode(self, episode_id: str) -> MediaItem:
        """Fetch the episode after episode_id in the same season."""
        ...

    def search(self, query: str) -> list[MediaItem]:
        """Search the server for movies and episodes."""
        ...

    def resolve_playable_url(self, item_id: str) -> str:
        """Resolve a direct-play URL for an item."""
        ...

    def mark_played(self, item_id: str) -> None:
        """Mark an item as watched."""
        ...

    def mark_unplayed(self, item_id: str) -> None:
        """Mark an item as unwatched."""
        ...

    def get_playlists(self) -> list[Playlist]:
        """List video playlists."""
        ...

    def get_playlist_items(self, playlist_id: str) -> list[MediaItem]:
        """List the items of a playlist."""
        ...

    def create_playlist(self, title: str, item_ids: list[str]) -> Playlist:
        """Create a playlist seeded with items."""
        ...

    def add_to_playlist(self, playlist_id: str, item_ids: list[str]) -> None:
        """Append items to a playlist."""
        ...

    def remove_from_playlist(self, playlist_id: str, item_id: str) -> None:
        """Remove an item from a playlist."""
        ...

    def delete_playlist(self, playlist_id: str) -> None:
        """Delete a playlist."""
        ...

    def close(self) -> None:
        """Release network resources."""
        ...


def next_in_season(current: MediaItem, episodes: list[MediaItem]) -> MediaItem:
    """Return the episode that follows current within its season.

    Raises:
        NotFoundError: If current is not an episode or is the season's last.
    """
    if current.type != MediaType.EPISODE:
        raise NotFoundError(f"Item {current.id} is not an episode")
    for index, episode in enumerate(episodes[:-1]):
        if episode.id == current.id:
            return episodes[index + 1]
    raise NotFoundError(f"No next episode after {current.id}")

"""Test fixtures and configuration."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from kino.config import SourceType
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

Responder = Callable[[httpx.Request], httpx.Response]


class FakeServer:
    """Routes httpx requests to canned responses and records them.

    Routes are keyed by (method, path). A route given a list of responses
    serves them in order and then keeps repeating the last one.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Responder]] = {}

    def add(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        json: Any = None,
        text: str | None = None,
    ) -> None:
        self._routes[(method, path)] = [_responder(status, json, text)]

    def add_sequence(
        self, method: str, path: str, responses: list[tuple[int, Any]]
    ) -> None:
        self._routes[(method, path)] = [
            _responder(status, body, None) for status, body in responses
        ]

    def add_handler(self, method: str, path: str, handler: Responder) -> None:
        self._routes[(method, path)] = [handler]

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responders = self._routes.get((request.method, request.url.path))
        if not responders:
            return httpx.Response(404, json={"error": "no route"})
        responder = responders.pop(0) if len(responders) > 1 else responders[0]
        return responder(request)


def _responder(status: int, json: Any, text: str | None) -> Responder:
    def respond(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        if json is None:
            return httpx.Response(status)
        return httpx.Response(status, json=json)

    return respond


class FakeSource:
    """In-memory MediaSourceProtocol implementation for engine tests.

    Pages are sliced from per-library item lists. The reported total can be
    overridden per library, and a failure can be injected at an offset.
    """

    source_type = SourceType.PLEX

    def __init__(
        self,
        libraries: list[Library],
        items: dict[str, list[LibraryContent]],
        totals: dict[str, int] | None = None,
        failures: dict[str, tuple[int, Exception]] | None = None,
    ) -> None:
        self.libraries = libraries
        self.items = items
        self.totals = totals or {}
        self.failures = failures or {}
        self.page_calls: list[tuple[str, int, int]] = []
        self.seasons: dict[str, list[Season]] = {}
        self.episodes: dict[str, list[MediaItem]] = {}
        self.season_calls = 0
        self.episode_calls = 0
        self.before_page: Callable[[str, int], None] | None = None

    def _page(self, library_id: str, offset: int, limit: int) -> Page:
        self.page_calls.append((library_id, offset, limit))
        if self.before_page is not None:
            self.before_page(library_id, offset)
        failure = self.failures.get(library_id)
        if failure is not None and offset >= failure[0]:
            raise failure[1]
        all_items = self.items.get(library_id, [])
        chunk = all_items[offset : offset + limit] if limit > 0 else all_items[offset:]
        return Page(items=chunk, total=self.totals.get(library_id, len(all_items)))

    def fetch_identity(self, timeout: float | None = None) -> str:
        return "fake-server"

    def get_libraries(self) -> list[Library]:
        return list(self.libraries)

    def get_movies(self, library_id: str, offset: int, limit: int) -> Page:
        return self._page(library_id, offset, limit)

    def get_shows(self, library_id: str, offset: int, limit: int) -> Page:
        return self._page(library_id, offset, limit)

    def get_mixed_content(self, library_id: str, offset: int, limit: int) -> Page:
        return self._page(library_id, offset, limit)

    def get_seasons(self, show_id: str) -> list[Season]:
        self.season_calls += 1
        return self.seasons.get(show_id, [])

    def get_episodes(self, season_id: str) -> list[MediaItem]:
        self.episode_calls += 1
        return self.episodes.get(season_id, [])

    def get_media_item(self, item_id: str) -> MediaItem:
        raise NotImplementedError

    def get_next_episode(self, episode_id: str) -> MediaItem:
        raise NotImplementedError

    def search(self, query: str) -> list[MediaItem]:
        return []

    def resolve_playable_url(self, item_id: str) -> str:
        return f"http://fake/{item_id}"

    def mark_played(self, item_id: str) -> None:
        pass

    def mark_unplayed(self, item_id: str) -> None:
        pass

    def get_playlists(self) -> list[Playlist]:
        return []

    def get_playlist_items(self, playlist_id: str) -> list[MediaItem]:
        return []

    def create_playlist(self, title: str, item_ids: list[str]) -> Playlist:
        return Playlist(id="pl", title=title, item_count=len(item_ids))

    def add_to_playlist(self, playlist_id: str, item_ids: list[str]) -> None:
        pass

    def remove_from_playlist(self, playlist_id: str, item_id: str) -> None:
        pass

    def delete_playlist(self, playlist_id: str) -> None:
        pass

    def close(self) -> None:
        pass


def make_movies(count: int, prefix: str = "m") -> list[MediaItem]:
    """Create numbered movies with ids prefix0, prefix1, ..."""
    return [
        MediaItem(id=f"{prefix}{i}", title=f"Movie {i}", type=MediaType.MOVIE)
        for i in range(count)
    ]


@pytest.fixture
def server() -> FakeServer:
    """Create a fake HTTP server."""
    return FakeServer()


@pytest.fixture
def http_client(server: FakeServer) -> httpx.Client:
    """Create an httpx client routed to the fake server."""
    return httpx.Client(transport=httpx.MockTransport(server))


@pytest.fixture
def movie_library() -> Library:
    """Create a sample movie library."""
    return Library(id="1", name="Movies", type=LibraryType.MOVIE, updated_at=100)


@pytest.fixture
def show_library() -> Library:
    """Create a sample show library."""
    return Library(id="2", name="TV Shows", type=LibraryType.SHOW)


@pytest.fixture
def sample_episode() -> MediaItem:
    """Create a sample episode."""
    return MediaItem(
        id="e1",
        title="Pilot",
        type=MediaType.EPISODE,
        show_id="s1",
        show_title="The Show",
        season_id="se1",
        season_num=1,
        episode_num=5,
        duration_ms=1_800_000,
    )


@pytest.fixture
def sample_show() -> Show:
    """Create a sample show."""
    return Show(id="s1", title="The Show", episode_count=10, unwatched_count=4)

"""Tests for PlexClient against a mocked Plex server."""

import httpx
import pytest
from conftest import FakeServer
from kino.exceptions import (
    AuthError,
    IdentityUnavailableError,
    NotFoundError,
    PlaylistSeedRequiredError,
    ResponseParseError,
    ServerOfflineError,
    TransportError,
)
from kino.models.domain import MediaItem, Show
from kino.models.enums import LibraryType, MediaType
from kino.sources.plex import PlexClient

BASE_URL = "http://plex.local:32400"
TOKEN = "plex-token"
MACHINE_ID = "abc123machine"


def envelope(**container: object) -> dict:
    return {"MediaContainer": container}


MOVIE_METADATA = {
    "ratingKey": "101",
    "type": "movie",
    "title": "The Matrix",
    "titleSort": "Matrix",
    "librarySectionID": 1,
    "year": 1999,
    "duration": 8_160_000,
    "viewOffset": 60_000,
    "viewCount": 0,
    "audienceRating": 8.7,
    "rating": 7.0,
    "contentRating": "Not Rated",
    "summary": "Red pill.",
    "addedAt": 1_600_000_000,
    "Media": [
        {
            "videoCodec": "hevc",
            "audioCodec": "dca",
            "container": "mkv",
            "Part": [{"key": "/library/parts/55/file.mkv", "size": 1234}],
        }
    ],
}

EPISODE_METADATA = {
    "ratingKey": "301",
    "type": "episode",
    "title": "Pilot",
    "grandparentTitle": "The Show",
    "grandparentRatingKey": "200",
    "parentRatingKey": "250",
    "parentIndex": 1,
    "index": 3,
    "duration": 1_800_000,
    "viewCount": 2,
}

SHOW_METADATA = {
    "ratingKey": "200",
    "type": "show",
    "title": "The Show",
    "childCount": 2,
    "leafCount": 20,
    "viewedLeafCount": 5,
    "rating": 8.1,
}


@pytest.fixture
def client(http_client: httpx.Client) -> PlexClient:
    return PlexClient(
        BASE_URL, TOKEN, http_client=http_client, machine_identifier=MACHINE_ID
    )


class TestRequestHeaders:
    def test_sends_identification_headers(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/library/sections", json=envelope(Directory=[]))
        client.get_libraries()

        headers = server.requests[0].headers
        assert headers["X-Plex-Token"] == TOKEN
        assert headers["Accept"] == "application/json"
        assert headers["X-Plex-Product"] == "Kino"
        assert headers["X-Plex-Client-Identifier"]
        assert headers["User-Agent"] == "Kino/1.0"


class TestGetLibraries:
    def test_keeps_movie_and_show_sections(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/library/sections",
            json=envelope(
                size=3,
                Directory=[
                    {
                        "key": "1",
                        "type": "movie",
                        "title": "Movies",
                        "contentChangedAt": 1700000000,
                    },
                    {"key": "2", "type": "show", "title": "TV"},
                    {"key": "3", "type": "artist", "title": "Music"},
                ],
            ),
        )
        libraries = client.get_libraries()

        assert [lib.id for lib in libraries] == ["1", "2"]
        assert libraries[0].type == LibraryType.MOVIE
        assert libraries[0].updated_at == 1700000000
        assert libraries[1].type == LibraryType.SHOW


class TestPagination:
    def test_sends_start_and_size(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET",
            "/library/sections/1/all",
            json=envelope(size=1, totalSize=120, Metadata=[MOVIE_METADATA]),
        )
        page = client.get_movies("1", 50, 50)

        params = server.requests[0].url.params
        assert params["X-Plex-Container-Start"] == "50"
        assert params["X-Plex-Container-Size"] == "50"
        assert page.total == 120
        assert len(page.items) == 1

    def test_zero_limit_omits_size(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/library/sections/1/all", json=envelope(size=0))
        client.get_movies("1", 0, 0)

        params = server.requests[0].url.params
        assert params["X-Plex-Container-Start"] == "0"
        assert "X-Plex-Container-Size" not in params

    def test_total_falls_back_to_size(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/library/sections/1/all",
            json=envelope(size=1, Metadata=[MOVIE_METADATA]),
        )
        assert client.get_movies("1", 0, 50).total == 1

    def test_mixed_content_dispatches_on_type(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/library/sections/9/all",
            json=envelope(size=2, Metadata=[MOVIE_METADATA, SHOW_METADATA]),
        )
        page = client.get_mixed_content("9", 0, 50)

        assert isinstance(page.items[0], MediaItem)
        assert isinstance(page.items[1], Show)


class TestConversion:
    def test_movie_fields(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET",
            "/library/sections/1/all",
            json=envelope(size=1, Metadata=[MOVIE_METADATA]),
        )
        movie = client.get_movies("1", 0, 50).items[0]

        assert movie.id == "101"
        assert movie.sort_title == "Matrix"
        assert movie.library_id == "1"
        assert movie.type == MediaType.MOVIE
        assert movie.duration_ms == 8_160_000
        assert movie.view_offset_ms == 60_000
        assert not movie.is_played
        assert movie.rating == 8.7
        assert movie.content_rating == "NR"
        assert movie.video_codec == "HEVC"
        assert movie.audio_codec == "DTS"
        assert movie.container == "mkv"
        assert movie.file_size == 1234

    def test_rating_falls_back_when_audience_rating_missing(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/library/sections/2/all",
            json=envelope(size=1, Metadata=[SHOW_METADATA]),
        )
        show = client.get_shows("2", 0, 50).items[0]

        assert show.rating == 8.1
        assert show.episode_count == 20
        assert show.unwatched_count == 15
        assert show.season_count == 2

    def test_episode_fields(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET",
            "/library/metadata/250/children",
            json=envelope(size=1, Metadata=[EPISODE_METADATA]),
        )
        episode = client.get_episodes("250")[0]

        assert episode.type == MediaType.EPISODE
        assert episode.show_id == "200"
        assert episode.show_title == "The Show"
        assert episode.season_id == "250"
        assert episode.episode_code == "S01E03"
        assert episode.is_played

    def test_seasons(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET",
            "/library/metadata/200/children",
            json=envelope(
                size=2,
                Metadata=[
                    {
                        "ratingKey": "249",
                        "type": "season",
                        "title": "Specials",
                        "index": 0,
                        "leafCount": 2,
                        "viewedLeafCount": 2,
                    },
                    {
                        "ratingKey": "250",
                        "type": "season",
                        "title": "Season 1",
                        "index": 1,
                        "parentRatingKey": "200",
                        "leafCount": 10,
                        "viewedLeafCount": 0,
                    },
                ],
            ),
        )
        seasons = client.get_seasons("200")

        assert seasons[0].display_title == "Specials"
        assert seasons[0].unwatched_count == 0
        assert seasons[1].show_id == "200"
        assert seasons[1].unwatched_count == 10


class TestItems:
    def test_resolve_playable_url(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET", "/library/metadata/101", json=envelope(Metadata=[MOVIE_METADATA])
        )
        url = client.resolve_playable_url("101")
        assert url == f"{BASE_URL}/library/parts/55/file.mkv?X-Plex-Token={TOKEN}"

    def test_resolve_without_media_raises(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/library/metadata/101",
            json=envelope(Metadata=[{"ratingKey": "101", "title": "x"}]),
        )
        with pytest.raises(NotFoundError):
            client.resolve_playable_url("101")

    def test_missing_metadata_raises_not_found(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/library/metadata/999", json=envelope(size=0))
        with pytest.raises(NotFoundError, match="Item not found"):
            client.get_media_item("999")

    def test_next_episode_in_season(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        following = {**EPISODE_METADATA, "ratingKey": "302", "index": 4}
        server.add(
            "GET", "/library/metadata/301", json=envelope(Metadata=[EPISODE_METADATA])
        )
        server.add(
            "GET",
            "/library/metadata/250/children",
            json=envelope(size=2, Metadata=[EPISODE_METADATA, following]),
        )

        episode = client.get_next_episode("301")

        assert episode.id == "302"
        assert episode.episode_code == "S01E04"

    def test_last_episode_has_no_next(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET", "/library/metadata/301", json=envelope(Metadata=[EPISODE_METADATA])
        )
        server.add(
            "GET",
            "/library/metadata/250/children",
            json=envelope(size=1, Metadata=[EPISODE_METADATA]),
        )

        with pytest.raises(NotFoundError, match="No next episode"):
            client.get_next_episode("301")

    def test_next_episode_of_movie_raises(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET", "/library/metadata/101", json=envelope(Metadata=[MOVIE_METADATA])
        )

        with pytest.raises(NotFoundError, match="not an episode"):
            client.get_next_episode("101")
        assert server.requests_to("GET", "/library/metadata/250/children") == []

    def test_search_keeps_playable_types(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/search",
            json=envelope(Metadata=[MOVIE_METADATA, SHOW_METADATA, EPISODE_METADATA]),
        )
        results = client.search("matrix")

        assert [r.id for r in results] == ["101", "301"]
        assert server.requests[0].url.params["query"] == "matrix"

    def test_mark_played_and_unplayed(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/:/scrobble")
        server.add("GET", "/:/unscrobble")
        client.mark_played("101")
        client.mark_unplayed("101")

        assert server.requests[0].url.params["key"] == "101"
        assert server.requests[1].url.path == "/:/unscrobble"


class TestPlaylists:
    def test_create_with_no_items_makes_no_request(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        with pytest.raises(PlaylistSeedRequiredError):
            client.create_playlist("Empty", [])
        assert server.requests == []

    def test_create_without_identity_makes_no_request(
        self, http_client: httpx.Client, server: FakeServer
    ) -> None:
        client = PlexClient(BASE_URL, TOKEN, http_client=http_client)
        with pytest.raises(IdentityUnavailableError):
            client.create_playlist("Favorites", ["101"])
        assert server.requests == []

    def test_create_builds_library_uri(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "POST",
            "/playlists",
            json=envelope(
                Metadata=[
                    {
                        "ratingKey": "900",
                        "title": "Favorites",
                        "playlistType": "video",
                        "leafCount": 2,
                    }
                ]
            ),
        )
        playlist = client.create_playlist("Favorites", ["101", "102"])

        params = server.requests[0].url.params
        assert params["type"] == "video"
        assert params["title"] == "Favorites"
        assert params["smart"] == "0"
        assert params["uri"] == (
            f"server://{MACHINE_ID}/com.plexapp.plugins.library"
            "/library/metadata/101,102"
        )
        assert playlist.id == "900"
        assert playlist.item_count == 2

    def test_add_sends_one_request_per_item(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("PUT", "/playlists/900/items")
        client.add_to_playlist("900", ["101", "102"])

        uris = [r.url.params["uri"] for r in server.requests]
        assert len(uris) == 2
        assert uris[0].endswith("/library/metadata/101")
        assert uris[1].endswith("/library/metadata/102")

    def test_remove_resolves_playlist_item_id(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/playlists/900/items",
            json=envelope(
                Metadata=[
                    {"ratingKey": "101", "title": "a", "playlistItemID": 7},
                    {"ratingKey": "102", "title": "b", "playlistItemID": 8},
                ]
            ),
        )
        server.add("DELETE", "/playlists/900/items/8")
        client.remove_from_playlist("900", "102")

        assert len(server.requests_to("DELETE", "/playlists/900/items/8")) == 1

    def test_remove_missing_item_raises(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add(
            "GET",
            "/playlists/900/items",
            json=envelope(Metadata=[{"ratingKey": "101", "playlistItemID": 7}]),
        )
        with pytest.raises(NotFoundError):
            client.remove_from_playlist("900", "555")
        assert all(r.method == "GET" for r in server.requests)

    def test_get_playlists(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET",
            "/playlists",
            json=envelope(
                Metadata=[
                    {
                        "ratingKey": "900",
                        "title": "Favorites",
                        "playlistType": "video",
                        "smart": True,
                        "leafCount": 12,
                        "duration": 3_600_000,
                    }
                ]
            ),
        )
        playlist = client.get_playlists()[0]

        assert playlist.smart
        assert playlist.item_count == 12
        assert playlist.duration_ms == 3_600_000

    def test_delete_playlist(self, client: PlexClient, server: FakeServer) -> None:
        server.add("DELETE", "/playlists/900")
        client.delete_playlist("900")
        assert server.requests[0].method == "DELETE"


class TestIdentity:
    def test_parses_xml(self, client: PlexClient, server: FakeServer) -> None:
        server.add(
            "GET",
            "/identity",
            text='<?xml version="1.0"?><MediaContainer machineIdentifier="xyz"/>',
        )
        assert client.fetch_identity() == "xyz"
        assert client.machine_identifier == "xyz"

    def test_parses_json(self, client: PlexClient, server: FakeServer) -> None:
        server.add("GET", "/identity", json=envelope(machineIdentifier="json-id"))
        assert client.fetch_identity() == "json-id"

    def test_missing_identifier_raises(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/identity", json=envelope(size=0))
        with pytest.raises(ResponseParseError):
            client.fetch_identity()


class TestErrorMapping:
    def test_unauthorized_raises_auth_error(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/library/sections", status=401)
        with pytest.raises(AuthError):
            client.get_libraries()

    def test_server_error_carries_status(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/library/sections", status=500)
        with pytest.raises(TransportError) as exc_info:
            client.get_libraries()
        assert exc_info.value.status == 500

    def test_connection_failure_raises_offline(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http_client = httpx.Client(transport=httpx.MockTransport(refuse))
        client = PlexClient(BASE_URL, TOKEN, http_client=http_client)
        with pytest.raises(ServerOfflineError):
            client.get_libraries()

    def test_timeout_raises_offline(self) -> None:
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        http_client = httpx.Client(transport=httpx.MockTransport(slow))
        client = PlexClient(BASE_URL, TOKEN, http_client=http_client)
        with pytest.raises(ServerOfflineError):
            client.get_libraries()

    def test_invalid_json_raises_parse_error(
        self, client: PlexClient, server: FakeServer
    ) -> None:
        server.add("GET", "/library/sections", text="{not json")
        with pytest.raises(ResponseParseError):
            client.get_libraries()

"""Tests for library snapshot persistence."""

from pathlib import Path

import pytest
from conftest import make_movies
from kino.models.domain import MediaItem, Show
from kino.services.snapshots import (
    JsonSnapshotStore,
    LibrarySnapshot,
    MemorySnapshotStore,
    server_namespace,
)

SERVER_URL = "http://plex.local:32400"


@pytest.fixture
def store(tmp_path: Path) -> JsonSnapshotStore:
    return JsonSnapshotStore(tmp_path, SERVER_URL)


class TestServerNamespace:
    def test_normalizes_url(self) -> None:
        assert server_namespace("http://Plex.local:32400/") == server_namespace(
            SERVER_URL
        )

    def test_differs_per_server(self) -> None:
        assert server_namespace(SERVER_URL) != server_namespace("http://other:8096")

    def test_is_short_hex(self) -> None:
        namespace = server_namespace(SERVER_URL)
        assert len(namespace) == 12
        int(namespace, 16)


class TestJsonSnapshotStore:
    def test_missing_snapshot(self, store: JsonSnapshotStore) -> None:
        assert store.load("1") is None

    def test_persists_mixed_content(
        self, store: JsonSnapshotStore, tmp_path: Path, sample_show: Show
    ) -> None:
        snapshot = LibrarySnapshot(
            items=[*make_movies(2), sample_show], server_updated_at=1700000000
        )
        store.save("1", snapshot)

        reopened = JsonSnapshotStore(tmp_path, SERVER_URL)
        loaded = reopened.load("1")

        assert loaded is not None
        assert loaded.server_updated_at == 1700000000
        assert isinstance(loaded.items[0], MediaItem)
        assert isinstance(loaded.items[2], Show)

    def test_file_layout(self, store: JsonSnapshotStore, tmp_path: Path) -> None:
        store.save("7", LibrarySnapshot())

        expected = tmp_path / server_namespace(SERVER_URL) / "library_7.json"
        assert expected.is_file()
        assert list(store.directory.glob("*.tmp")) == []

    def test_servers_do_not_share_snapshots(self, tmp_path: Path) -> None:
        JsonSnapshotStore(tmp_path, SERVER_URL).save(
            "1", LibrarySnapshot(items=make_movies(1))
        )
        other = JsonSnapshotStore(tmp_path, "http://jellyfin.local:8096")
        assert other.load("1") is None

    def test_save_replaces_previous(self, store: JsonSnapshotStore) -> None:
        store.save("1", LibrarySnapshot(items=make_movies(5)))
        store.save("1", LibrarySnapshot(items=make_movies(2)))

        loaded = store.load("1")
        assert loaded is not None
        assert len(loaded.items) == 2

    def test_corrupt_file_is_ignored(self, store: JsonSnapshotStore) -> None:
        store.directory.mkdir(parents=True)
        (store.directory / "library_1.json").write_text("{not json", encoding="utf-8")

        assert store.load("1") is None

    def test_save_failure_is_swallowed(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = JsonSnapshotStore(blocker, SERVER_URL)

        store.save("1", LibrarySnapshot(items=make_movies(1)))

        assert store.load("1") is None

    def test_delete(self, store: JsonSnapshotStore) -> None:
        store.save("1", LibrarySnapshot())
        store.delete("1")
        store.delete("1")
        assert store.load("1") is None


class TestMemorySnapshotStore:
    def test_save_load_delete(self) -> None:
        store = MemorySnapshotStore()
        snapshot = LibrarySnapshot(items=make_movies(3))

        store.save("1", snapshot)
        assert store.load("1") is snapshot

        store.delete("1")
        assert store.load("1") is None

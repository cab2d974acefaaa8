"""Tests for SyncStateStore."""

import threading

import pytest
from kino.models.enums import SyncStatus
from kino.models.sync import SyncState
from kino.services.state_store import SyncStateStore


@pytest.fixture
def store() -> SyncStateStore:
    return SyncStateStore()


class TestSyncStateStore:
    def test_unknown_library_is_idle(self, store: SyncStateStore) -> None:
        assert store.get("missing").status == SyncStatus.IDLE
        assert len(store) == 0

    def test_set_replaces_state(self, store: SyncStateStore) -> None:
        store.set("1", SyncState(status=SyncStatus.SYNCED, loaded=3, total=3))
        assert store.get("1").loaded == 3

    def test_update_derives_from_current(self, store: SyncStateStore) -> None:
        store.set("1", SyncState(status=SyncStatus.SYNCING, total=10))

        updated = store.update("1", loaded=4)

        assert updated.status == SyncStatus.SYNCING
        assert updated.total == 10
        assert store.get("1").loaded == 4

    def test_update_does_not_mutate_previous_value(
        self, store: SyncStateStore
    ) -> None:
        before = store.update("1", loaded=1)
        store.update("1", loaded=2)
        assert before.loaded == 1

    def test_register_keeps_existing_state(self, store: SyncStateStore) -> None:
        store.set("1", SyncState(status=SyncStatus.SYNCED))
        store.register("1")
        store.register("2")

        assert store.get("1").status == SyncStatus.SYNCED
        assert len(store) == 2

    def test_remove(self, store: SyncStateStore) -> None:
        store.register("1")
        store.remove("1")
        store.remove("1")
        assert len(store) == 0

    def test_snapshot_is_a_copy(self, store: SyncStateStore) -> None:
        store.register("1")
        snapshot = store.snapshot()
        store.register("2")
        assert set(snapshot) == {"1"}

    def test_concurrent_updates(self, store: SyncStateStore) -> None:
        """Concurrent writers to different libraries never lose updates."""

        def work(library_id: str) -> None:
            for i in range(1, 201):
                store.update(library_id, loaded=i)

        threads = [threading.Thread(target=work, args=(str(n),)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 8
        assert all(state.loaded == 200 for state in store.snapshot().values())

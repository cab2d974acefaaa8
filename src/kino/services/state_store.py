"""In-memory sync state store with thread-safe operations."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from kino.models.sync import SyncState

logger = logging.getLogger(__name__)


class SyncStateStore:
    """Holds one immutable SyncState per library.

    Thread-Safety:
        All public methods are thread-safe using a single lock. Every write
        replaces the whole SyncState value, so a reader sees either the old
        or the new state and never a mix of the two.

    Writers are the sync workers (one per library); readers are any number
    of UI threads polling progress.
    """

    def __init__(self) -> None:
        self._states: dict[str, SyncState] = {}
        self._lock = threading.Lock()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def get(self, library_id: str) -> SyncState:
        """Return the state of a library, Idle if it was never registered."""
        with self._locked():
            return self._states.get(library_id, SyncState())

    def set(self, library_id: str, state: SyncState) -> None:
        """Replace the state of a library."""
        with self._locked():
            self._states[library_id] = state

    def update(self, library_id: str, **changes: Any) -> SyncState:
        """Atomically derive a new state from the current one.

        Returns:
            The state that was stored.
        """
        with self._locked():
            current = self._states.get(library_id, SyncState())
            new_state = current.model_copy(update=changes)
            self._states[library_id] = new_state
            return new_state

    def register(self, library_id: str) -> SyncState:
        """Ensure a library has a state entry, leaving existing entries alone."""
        with self._locked():
            return self._states.setdefault(library_id, SyncState())

    def remove(self, library_id: str) -> None:
        with self._locked():
            self._states.pop(library_id, None)

    def snapshot(self) -> dict[str, SyncState]:
        """Return a point-in-time copy of every library's state."""
        with self._locked():
            return dict(self._states)

    def __len__(self) -> int:
        with self._locked():
            return len(self._states)

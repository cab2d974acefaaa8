"""Persisted library snapshots used as a cache fallback.

A snapshot is the complete item list of one library from the last
successful sync. The sync engine shows it while a refresh runs and keeps
it when a refresh fails. Partial results are never written.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kino.models.domain import LibraryContent

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "library_"


class LibrarySnapshot(BaseModel):
    """Items of one library as of its last successful sync.

    Attributes:
        items: Library contents (movies and/or shows).
        server_updated_at: Library's updated_at when the snapshot was taken.
    """

    model_config = ConfigDict(frozen=True)

    items: list[LibraryContent] = Field(default_factory=list)
    server_updated_at: int = 0


class SnapshotStoreProtocol(Protocol):
    """Protocol for snapshot persistence.

    Implementations must not raise on storage failures; a missing or
    unreadable snapshot is reported as None.
    """

    def load(self, library_id: str) -> LibrarySnapshot | None:
        """Load a library's snapshot, or None if there is none."""
        ...

    def save(self, library_id: str, snapshot: LibrarySnapshot) -> None:
        """Persist a library's snapshot, replacing any previous one."""
        ...

    def delete(self, library_id: str) -> None:
        """Remove a library's snapshot."""
        ...


def server_namespace(server_url: str) -> str:
    """Stable directory name for a server: sha256 of its normalized URL."""
    normalized = server_url.strip().rstrip("/").lower()
    return hashlib.sha256(normalized.encode()).hexdigest()[:12]


class JsonSnapshotStore:
    """Snapshot store writing one JSON file per library.

    Files live under base_dir/<server namespace>/ so several servers can
    share a cache directory. Writes go to a temporary file that is renamed
    into place, so readers never observe a truncated snapshot. Storage
    errors are logged and swallowed - losing a snapshot only means the
    next start shows an empty library until the sync completes.
    """

    def __init__(self, base_dir: Path, server_url: str) -> None:
        self._dir = base_dir / server_namespace(server_url)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, library_id: str) -> Path:
        return self._dir / f"{SNAPSHOT_PREFIX}{library_id}.json"

    def load(self, library_id: str) -> LibrarySnapshot | None:
        path = self._path(library_id)
        try:
            data = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            logger.warning("Failed to read snapshot %s", path, exc_info=True)
            return None
        try:
            return LibrarySnapshot.model_validate_json(data)
        except ValidationError:
            logger.warning("Discarding unreadable snapshot %s", path)
            return None

    def save(self, library_id: str, snapshot: LibrarySnapshot) -> None:
        path = self._path(library_id)
        tmp_name: str | None = None
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._dir,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(snapshot.model_dump_json())
            os.replace(tmp_name, path)
            logger.debug(
                "Saved snapshot of library %s (%d items)",
                library_id,
                len(snapshot.items),
            )
        except OSError:
            logger.warning("Failed to save snapshot %s", path, exc_info=True)
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def delete(self, library_id: str) -> None:
        try:
            self._path(library_id).unlink(missing_ok=True)
        except OSError:
            logger.warning(
                "Failed to delete snapshot of library %s", library_id, exc_info=True
            )


class MemorySnapshotStore:
    """In-process snapshot store. Useful for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._snapshots: dict[str, LibrarySnapshot] = {}
        self._lock = threading.Lock()

    def load(self, library_id: str) -> LibrarySnapshot | None:
        with self._lock:
            return self._snapshots.get(library_id)

    def save(self, library_id: str, snapshot: LibrarySnapshot) -> None:
        with self._lock:
            self._snapshots[library_id] = snapshot

    def delete(self, library_id: str) -> None:
        with self._lock:
            self._snapshots.pop(library_id, None)

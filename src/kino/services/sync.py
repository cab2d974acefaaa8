"""Library sync engine.

Loads every library of a media source page by page, keeps the results
in an in-memory cache, and publishes per-library progress through a
SyncStateStore that UI threads can poll at any time.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from kino.config import SyncConfig
from kino.exceptions import CancellationError, KinoError, PartialSyncError
from kino.models.cancel import CancelToken
from kino.models.domain import Library, LibraryContent, MediaItem, Page, Season
from kino.models.enums import LibraryType, SyncStatus
from kino.models.sync import SyncState
from kino.services.snapshots import LibrarySnapshot, SnapshotStoreProtocol
from kino.services.state_store import SyncStateStore
from kino.sources.base import MediaSourceProtocol

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, SyncState], None]


class LibrarySyncEngine:
    """Synchronizes library contents from a media source.

    Each library is synced by its own worker from a bounded thread pool.
    Within a library, pages are fetched strictly in sequence. A library's
    cached collection is replaced as a whole once its attempt finishes, so
    readers see either the previous collection or the new one.

    Failure handling:
        A failing library ends in SyncStatus.ERROR without affecting the
        others. Items already visible (from a previous sync or a snapshot)
        stay visible; if there were none, the partial accumulation is shown
        instead. Snapshots are only written after a complete sync.
    """

    def __init__(
        self,
        source: MediaSourceProtocol,
        *,
        state_store: SyncStateStore | None = None,
        snapshots: SnapshotStoreProtocol | None = None,
        config: SyncConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            source: Media source (facade or adapter) to read from.
            state_store: Progress store. Creates one if not provided.
            snapshots: Optional snapshot persistence for cache fallback.
            config: Sync configuration. Uses defaults if not provided.
            on_progress: Called with (library_id, state) after every update.
        """
        self._source = source
        self._states = state_store or SyncStateStore()
        self._snapshots = snapshots
        self._config = config or SyncConfig()
        self._on_progress = on_progress

        self._lock = threading.Lock()
        self._libraries: dict[str, Library] = {}
        self._items: dict[str, list[LibraryContent]] = {}
        self._errors: dict[str, KinoError] = {}
        self._seasons: dict[str, list[Season]] = {}
        self._episodes: dict[str, list[MediaItem]] = {}

    # -------------------------------------------------------------------------
    # Public API: Reads
    # -------------------------------------------------------------------------

    @property
    def state_store(self) -> SyncStateStore:
        return self._states

    @property
    def libraries(self) -> list[Library]:
        """Known libraries, in server order."""
        with self._lock:
            return list(self._libraries.values())

    def get_library(self, library_id: str) -> Library | None:
        with self._lock:
            return self._libraries.get(library_id)

    def get_items(self, library_id: str) -> list[LibraryContent]:
        """Cached contents of a library. Empty if never loaded."""
        with self._lock:
            return list(self._items.get(library_id, ()))

    def get_state(self, library_id: str) -> SyncState:
        return self._states.get(library_id)

    def states(self) -> dict[str, SyncState]:
        """Point-in-time copy of every library's sync state."""
        return self._states.snapshot()

    def last_error(self, library_id: str) -> KinoError | None:
        """Error of the library's most recent failed attempt, if any."""
        with self._lock:
            return self._errors.get(library_id)

    def get_seasons(self, show_id: str) -> list[Season]:
        """Seasons of a show, fetched from the source on first access."""
        with self._lock:
            cached = self._seasons.get(show_id)
        if cached is not None:
            logger.debug("Season cache hit for show %s", show_id)
            return list(cached)
        seasons = self._source.get_seasons(show_id)
        with self._lock:
            self._seasons[show_id] = seasons
        return list(seasons)

    def get_episodes(self, season_id: str) -> list[MediaItem]:
        """Episodes of a season, fetched from the source on first access."""
        with self._lock:
            cached = self._episodes.get(season_id)
        if cached is not None:
            logger.debug("Episode cache hit for season %s", season_id)
            return list(cached)
        episodes = self._source.get_episodes(season_id)
        with self._lock:
            self._episodes[season_id] = episodes
        return list(episodes)

    def invalidate(self, library_id: str) -> None:
        """Drop a library's cached items and reset its state to Idle.

        Persisted snapshots are kept. Season and episode caches are cleared
        since they cannot be attributed to a single library.
        """
        with self._lock:
            self._items.pop(library_id, None)
            self._errors.pop(library_id, None)
            self._seasons.clear()
            self._episodes.clear()
        self._publish(library_id, SyncState())

    # -------------------------------------------------------------------------
    # Public API: Sync
    # -------------------------------------------------------------------------

    def fetch_libraries(self) -> list[Library]:
        """Fetch the library list from the source and register each library."""
        libraries = self._source.get_libraries()
        self._register(libraries)
        logger.info("Found %d libraries", len(libraries))
        return libraries

    def load_snapshots(self, libraries: Sequence[Library] | None = None) -> int:
        """Show persisted snapshots for libraries with nothing loaded yet.

        Returns:
            Number of libraries restored from snapshots.
        """
        if self._snapshots is None:
            return 0
        restored = 0
        for library in libraries if libraries is not None else self.libraries:
            with self._lock:
                if self._items.get(library.id):
                    continue
            snapshot = self._snapshots.load(library.id)
            if snapshot is None:
                continue
            with self._lock:
                self._items[library.id] = list(snapshot.items)
            count = len(snapshot.items)
            self._publish(
                library.id,
                SyncState(
                    status=SyncStatus.SYNCED,
                    loaded=count,
                    total=count,
                    from_disk=True,
                ),
            )
            restored += 1
            logger.debug(
                "Restored %d items for library %s from snapshot", count, library.name
            )
        return restored

    def sync_all(
        self,
        libraries: Sequence[Library] | None = None,
        cancel_token: CancelToken | None = None,
    ) -> dict[str, SyncState]:
        """Sync every library concurrently.

        Args:
            libraries: Libraries to sync. Fetched from the source if omitted.
            cancel_token: Optional token to stop all workers between pages.

        Returns:
            Final state of each library, keyed by library id.
        """
        if libraries is None:
            libraries = self.fetch_libraries()
        else:
            self._register(libraries)
        if not libraries:
            return {}

        self.load_snapshots(libraries)

        workers = max(1, min(self._config.max_workers, len(libraries)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="kino-sync"
        ) as pool:
            futures = {
                pool.submit(self.sync_library, library, cancel_token): library
                for library in libraries
            }
            for future in as_completed(futures):
                library = futures[future]
                try:
                    future.result()
                except Exception:
                    # sync_library records its own failures; only a raising
                    # progress callback ends up here
                    logger.exception(
                        "Progress callback failed for library %s", library.name
                    )

        return {library.id: self.get_state(library.id) for library in libraries}

    def sync_library(
        self, library: Library, cancel_token: CancelToken | None = None
    ) -> SyncState:
        """Load every item of one library.

        Pagination stops on an empty page, once the accumulated count
        reaches the reported total, or on a page shorter than requested.
        Items are de-duplicated by id, first occurrence wins.

        Returns:
            The library's final SyncState (SYNCED or ERROR).
        """
        self._register([library])
        page_size = self._config.page_size
        accumulated: dict[str, LibraryContent] = {}
        offset = 0

        logger.debug("Syncing library %s (%s)", library.name, library.type)
        try:
            self._publish_update(
                library.id,
                status=SyncStatus.SYNCING,
                loaded=0,
                total=0,
                error=None,
                error_kind=None,
            )
            while True:
                if cancel_token is not None and cancel_token.is_cancelled:
                    raise CancellationError(f"Sync of {library.name} cancelled")

                page = self._fetch_page(library, offset, page_size)
                if not page.items:
                    break

                for item in page.items:
                    accumulated.setdefault(item.id, item)
                offset += len(page.items)
                self._publish_update(
                    library.id, loaded=len(accumulated), total=page.total
                )

                if page.total > 0 and offset >= page.total:
                    break
                if page_size > 0 and len(page.items) < page_size:
                    break
        except KinoError as e:
            return self._fail(library, list(accumulated.values()), e)
        except Exception as e:
            logger.exception("Unexpected error syncing library %s", library.name)
            return self._fail(library, list(accumulated.values()), e)

        return self._complete(library, list(accumulated.values()))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _fetch_page(self, library: Library, offset: int, limit: int) -> Page:
        match library.type:
            case LibraryType.MOVIE:
                return self._source.get_movies(library.id, offset, limit)
            case LibraryType.SHOW:
                return self._source.get_shows(library.id, offset, limit)
            case _:
                return self._source.get_mixed_content(library.id, offset, limit)

    def _complete(self, library: Library, items: list[LibraryContent]) -> SyncState:
        with self._lock:
            self._items[library.id] = items
            self._errors.pop(library.id, None)
        if self._snapshots is not None:
            self._snapshots.save(
                library.id,
                LibrarySnapshot(items=items, server_updated_at=library.updated_at),
            )
        state = SyncState(
            status=SyncStatus.SYNCED,
            loaded=len(items),
            total=len(items),
            from_disk=False,
        )
        self._publish(library.id, state)
        logger.info("Synced library %s: %d items", library.name, len(items))
        return state

    def _fail(
        self, library: Library, partial: list[LibraryContent], cause: Exception
    ) -> SyncState:
        error: KinoError
        if isinstance(cause, CancellationError):
            error = cause
            logger.info("Sync of library %s cancelled", library.name)
        else:
            error = PartialSyncError(library.id, len(partial), cause)
            logger.error("%s", error.message)

        with self._lock:
            if not self._items.get(library.id):
                self._items[library.id] = partial
            self._errors[library.id] = error

        return self._publish_update(
            library.id,
            status=SyncStatus.ERROR,
            loaded=len(partial),
            error=error.message,
            error_kind=type(cause).__name__,
        )

    def _register(self, libraries: Sequence[Library]) -> None:
        with self._lock:
            for library in libraries:
                self._libraries[library.id] = library
        for library in libraries:
            self._states.register(library.id)

    def _publish(self, library_id: str, state: SyncState) -> None:
        self._states.set(library_id, state)
        self._notify(library_id, state)

    def _publish_update(self, library_id: str, **changes: object) -> SyncState:
        state = self._states.update(library_id, **changes)
        self._notify(library_id, state)
        return state

    def _notify(self, library_id: str, state: SyncState) -> None:
        if self._on_progress is not None:
            self._on_progress(library_id, state)

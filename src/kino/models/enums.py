"""Enumerations for kino domain models."""

from enum import StrEnum


class LibraryType(StrEnum):
    """Kind of content a library holds."""

    MOVIE = "movie"
    SHOW = "show"
    MIXED = "mixed"


class MediaType(StrEnum):
    """Kind of playable item."""

    MOVIE = "movie"
    EPISODE = "episode"


class WatchStatus(StrEnum):
    """Tri-state watch status shared by items and containers."""

    UNWATCHED = "unwatched"
    IN_PROGRESS = "in_progress"
    WATCHED = "watched"

    @property
    def label(self) -> str:
        """Human-readable label for display."""
        match self:
            case WatchStatus.UNWATCHED:
                return "unwatched"
            case WatchStatus.IN_PROGRESS:
                return "in progress"
            case WatchStatus.WATCHED:
                return "watched"


class SyncStatus(StrEnum):
    """Lifecycle of one library sync."""

    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


class PinAuthState(StrEnum):
    """States of the Plex PIN authentication flow.

    PIN_REQUESTED -> AWAITING_CLAIM -> CLAIMED | EXPIRED | FAILED
    """

    PIN_REQUESTED = "pin_requested"
    AWAITING_CLAIM = "awaiting_claim"
    CLAIMED = "claimed"
    EXPIRED = "expired"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the flow has finished."""
        return self in (
            PinAuthState.CLAIMED,
            PinAuthState.EXPIRED,
            PinAuthState.FAILED,
            PinAuthState.CANCELLED,
        )

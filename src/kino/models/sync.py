"""Per-library sync progress model."""

from pydantic import BaseModel, ConfigDict

from kino.models.enums import SyncStatus


class SyncState(BaseModel):
    """Snapshot of one library's sync progress.

    Instances are immutable; the state store swaps whole values so
    readers never see a half-updated (loaded, total) pair.

    Attributes:
        status: Current lifecycle status.
        loaded: Items accumulated so far in the current attempt.
        total: Backend-reported total (advisory).
        from_disk: Whether the visible items came from a persisted snapshot.
        error: Error message when status is ERROR.
        error_kind: Exception class name classifying the failure.
    """

    model_config = ConfigDict(frozen=True)

    status: SyncStatus = SyncStatus.IDLE
    loaded: int = 0
    total: int = 0
    from_disk: bool = False
    error: str | None = None
    error_kind: str | None = None

    @property
    def is_syncing(self) -> bool:
        """Whether a sync attempt is running."""
        return self.status == SyncStatus.SYNCING

    @property
    def progress(self) -> float:
        """Fraction loaded in [0, 1]. Zero when the total is unknown."""
        if self.total <= 0:
            return 0.0
        return min(self.loaded / self.total, 1.0)

"""Cooperative cancellation shared by sync workers and auth polling."""

import threading


class CancelToken:
    """Cancellation signal checked between pages and between PIN polls.

    One token may be shared by every worker of a sync_all() run. Requests
    already in flight are never interrupted; the owner notices the token at
    its next checkpoint and raises CancellationError.

    Example:
        >>> token = CancelToken()
        >>> engine.sync_all(cancel_token=token)  # in a worker thread
        >>> token.cancel()  # from the UI thread
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread, more than once."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds, returning early if cancelled.

        Returns:
            True if the token is cancelled when the wait ends.
        """
        return self._event.wait(timeout)

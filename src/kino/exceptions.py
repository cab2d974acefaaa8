"""Custom exceptions for kino.

All exceptions include an HTTP status_code attribute for easy
integration with web frameworks and for classifying sync failures.
"""


class KinoError(Exception):
    """Base exception for kino.

    Attributes:
        status_code: HTTP status code for API error responses.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(KinoError):
    """Invalid media source configuration.

    Raised before any network activity when the server URL, token or
    backend-specific identifiers are missing or unknown.
    """

    status_code: int = 400  # Bad Request


class TransportError(KinoError):
    """Media server request failed.

    Attributes:
        status: HTTP status returned by the server, or None when the
            request never produced a response.
    """

    status_code: int = 502  # Bad Gateway (upstream failure)

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ServerOfflineError(TransportError):
    """Media server is unreachable.

    Raised on connection failures and timeouts. Callers may retry.
    """

    status_code: int = 503  # Service Unavailable


class ResponseParseError(TransportError):
    """Media server returned a body that could not be decoded."""

    status_code: int = 502  # Bad Gateway


class AuthError(KinoError):
    """Authentication rejected by the media server.

    Raised on HTTP 401 and on failed credential exchanges. Not retryable.
    """

    status_code: int = 401  # Unauthorized


class NotFoundError(KinoError):
    """Requested item does not exist or has no playable media."""

    status_code: int = 404  # Not Found


class ExpiredError(KinoError):
    """PIN or login window expired before it was claimed."""

    status_code: int = 410  # Gone


class CancellationError(KinoError):
    """Operation was cancelled.

    Raised when authentication polling or a sync is cancelled
    via a CancelToken.
    """

    status_code: int = 499  # Client Closed Request (nginx convention)


class PlaylistSeedRequiredError(KinoError):
    """Backend cannot create an empty playlist.

    Plex requires at least one item when creating a playlist.
    """

    status_code: int = 400  # Bad Request


class IdentityUnavailableError(KinoError):
    """Operation needs the server identity, which could not be resolved."""

    status_code: int = 409  # Conflict


class PartialSyncError(KinoError):
    """Library sync stopped before loading every item.

    Attributes:
        library_id: Library whose sync failed.
        loaded: Number of items accumulated before the failure.
        cause: Underlying error that stopped the sync.
    """

    def __init__(self, library_id: str, loaded: int, cause: Exception) -> None:
        super().__init__(
            f"Sync of library {library_id} failed after {loaded} items: {cause}"
        )
        self.library_id = library_id
        self.loaded = loaded
        self.cause = cause

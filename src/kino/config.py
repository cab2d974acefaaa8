"""Configuration for kino."""

from dataclasses import dataclass
from enum import StrEnum

# Default timeout for every media server request (seconds)
HTTP_TIMEOUT = 30.0

# Timeout for the identity probe made when a media source is created
PROBE_TIMEOUT = 10.0

# Client identity sent to both backends
CLIENT_PRODUCT = "Kino"
CLIENT_VERSION = "1.0"
CLIENT_IDENTIFIER = "kino-client"
CLIENT_DEVICE = "CLI"


class SourceType(StrEnum):
    """Supported media server backends."""

    PLEX = "plex"
    JELLYFIN = "jellyfin"


@dataclass(frozen=True)
class SourceConfig:
    """Connection settings for one media server.

    Attributes:
        type: Backend type.
        url: Base URL of the server (e.g. http://localhost:32400).
        token: Access token obtained from an auth flow.
        user_id: User identifier. Required for Jellyfin.
        username: Display name of the authenticated user.
    """

    type: SourceType | str
    url: str
    token: str
    user_id: str | None = None
    username: str | None = None


@dataclass(frozen=True)
class SyncConfig:
    """Library sync engine configuration.

    Attributes:
        page_size: Number of items requested per page.
        max_workers: Maximum number of libraries synced concurrently.
    """

    page_size: int = 50
    max_workers: int = 4


@dataclass(frozen=True)
class PinAuthConfig:
    """Plex PIN polling cadence.

    Attributes:
        initial_interval: Seconds to wait before the first claim check.
        max_interval: Upper bound for the doubling poll interval.
        timeout: Absolute deadline for the whole flow.
        plex_tv_url: Base URL of the plex.tv PIN API.
    """

    initial_interval: float = 1.0
    max_interval: float = 5.0
    timeout: float = 300.0
    plex_tv_url: str = "https://plex.tv"

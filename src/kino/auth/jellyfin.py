"""Jellyfin username/password authentication."""

import logging
from collections.abc import Callable

import httpx

from kino.auth.base import AuthResult
from kino.config import HTTP_TIMEOUT
from kino.exceptions import AuthError, CancellationError
from kino.models.cancel import CancelToken
from kino.models.jellyfin import JellyfinAuthResponse
from kino.sources.http import HttpTransport, decode_json, parse_model
from kino.sources.jellyfin import jellyfin_auth_header

logger = logging.getLogger(__name__)

# Returns (username, password)
CredentialsProvider = Callable[[], tuple[str, str]]


class JellyfinAuthFlow:
    """Exchange a username and password for a Jellyfin access token."""

    def __init__(
        self,
        credentials: CredentialsProvider,
        *,
        http_client: httpx.Client | None = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._credentials = credentials
        self._http_client = http_client
        self._timeout = timeout

    def authenticate(self, server_url: str, username: str, password: str) -> AuthResult:
        """Authenticate against /Users/AuthenticateByName.

        Raises:
            AuthError: If the credentials are rejected.
            ServerOfflineError: If the server is unreachable.
        """
        http = HttpTransport(
            server_url,
            jellyfin_auth_header(),
            client=self._http_client,
            timeout=self._timeout,
        )
        try:
            response = http.request(
                "POST",
                "/Users/AuthenticateByName",
                json={"Username": username, "Pw": password},
            )
        except AuthError as e:
            raise AuthError("Invalid username or password") from e
        finally:
            http.close()

        auth = parse_model(JellyfinAuthResponse, decode_json(response))
        logger.info("Authenticated to Jellyfin as %s", auth.user.name)
        return AuthResult(
            token=auth.access_token, user_id=auth.user.id, username=auth.user.name
        )

    def run(
        self, server_url: str, cancel_token: CancelToken | None = None
    ) -> AuthResult:
        username, password = self._credentials()
        if cancel_token is not None and cancel_token.is_cancelled:
            raise CancellationError("Jellyfin authentication cancelled")
        return self.authenticate(server_url, username, password)

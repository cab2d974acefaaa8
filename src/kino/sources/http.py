"""HTTP transport shared by the Plex and Jellyfin adapters.

Wraps httpx with a fixed base URL, default headers and a per-request
timeout, and maps every failure onto the kino exception hierarchy so
adapters never leak httpx types. No retries are performed here.
"""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from kino.config import HTTP_TIMEOUT
from kino.exceptions import (
    AuthError,
    ResponseParseError,
    ServerOfflineError,
    TransportError,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class HttpTransport:
    """Synchronous JSON transport for one media server.

    The underlying httpx.Client may be injected (e.g. one built on
    httpx.MockTransport in tests, or one shared between adapters). When it
    is created here, close() releases it.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Server base URL. A trailing slash is removed.
            headers: Headers sent with every request.
            client: Optional httpx client. Creates one if not provided.
            timeout: Default timeout for each request in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            self._client.close()

    def url(self, path: str) -> str:
        """Build an absolute URL. Absolute inputs are returned unchanged."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request and return the successful response.

        Raises:
            ServerOfflineError: On connection failures and timeouts.
            AuthError: If the server answers 401.
            TransportError: On any other non-2xx status or request failure.
        """
        url = self.url(path)
        clean_params = (
            {k: v for k, v in params.items() if v is not None} if params else None
        )
        merged_headers = {**self._headers, **(headers or {})}

        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(
                method,
                url,
                params=clean_params,
                json=json,
                headers=merged_headers,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            logger.warning("Server unreachable at %s: %s", url, e)
            raise ServerOfflineError(f"Server unreachable: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Request to %s failed: %s", url, e)
            raise TransportError(f"Request failed: {e}") from e

        status = response.status_code
        if status == httpx.codes.UNAUTHORIZED:
            raise AuthError(f"Authentication rejected by server ({method} {path})")
        if not response.is_success:
            logger.error("%s %s returned HTTP %d", method, url, status)
            raise TransportError(
                f"{method} {path} failed with HTTP {status}", status=status
            )
        return response

    def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """GET a path and decode its JSON body."""
        response = self.request("GET", path, params=params, timeout=timeout)
        return decode_json(response)

    def get_model(
        self,
        path: str,
        model: type[ModelT],
        *,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ModelT:
        """GET a path and validate its JSON body into a pydantic model."""
        return parse_model(model, self.get_json(path, params=params, timeout=timeout))


def decode_json(response: httpx.Response) -> Any:
    """Decode a JSON body, mapping decode failures to ResponseParseError."""
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as e:
        raise ResponseParseError(
            f"Invalid JSON from {response.request.url.path}: {e}",
            status=response.status_code,
        ) from e


def parse_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate decoded data, mapping validation failures to ResponseParseError."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ResponseParseError(f"Unexpected {model.__name__} response: {e}") from e

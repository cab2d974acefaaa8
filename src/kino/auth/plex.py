"""Plex PIN (device) authentication.

The user is shown a short code to enter at plex.tv/link while this flow
polls plex.tv until the PIN is claimed, expires, or the caller cancels.
"""

import logging
import time
from collections.abc import Callable

import httpx

from kino.auth.base import AuthResult
from kino.config import HTTP_TIMEOUT, PinAuthConfig
from kino.exceptions import (
    AuthError,
    CancellationError,
    ExpiredError,
    KinoError,
    TransportError,
)
from kino.models.cancel import CancelToken
from kino.models.enums import PinAuthState
from kino.models.plex import PlexPin
from kino.sources.http import HttpTransport, decode_json, parse_model
from kino.sources.plex import plex_headers

logger = logging.getLogger(__name__)

LINK_URL = "https://plex.tv/link"

# Waits up to the given seconds; returns True if cancelled meanwhile
Waiter = Callable[[float, CancelToken | None], bool]


def _default_wait(seconds: float, cancel_token: CancelToken | None) -> bool:
    if cancel_token is None:
        time.sleep(seconds)
        return False
    return cancel_token.wait(seconds)


def _log_pin(pin: PlexPin) -> None:
    logger.info("Go to %s and enter code: %s", LINK_URL, pin.code)


class PlexPinAuthFlow:
    """Plex PIN authentication state machine.

    PIN_REQUESTED -> AWAITING_CLAIM -> CLAIMED | EXPIRED | FAILED

    The poll interval starts at config.initial_interval, doubles after each
    unclaimed check up to config.max_interval, and the whole flow is bounded
    by config.timeout. Cancellation is checked at every tick and wakes the
    wait early; a claim check already in flight completes first.
    """

    def __init__(
        self,
        *,
        config: PinAuthConfig | None = None,
        http_client: httpx.Client | None = None,
        on_pin: Callable[[PlexPin], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Waiter = _default_wait,
    ) -> None:
        """Initialize the flow.

        Args:
            config: Polling cadence. Uses defaults if not provided.
            http_client: Optional httpx client for plex.tv requests.
            on_pin: Called with the PIN once it is issued, so the caller can
                display the code. Logs it by default.
            clock: Monotonic clock (enables testing).
            wait: Interruptible sleep (enables testing).
        """
        self._config = config or PinAuthConfig()
        self._http = HttpTransport(
            self._config.plex_tv_url,
            plex_headers(),
            client=http_client,
            timeout=HTTP_TIMEOUT,
        )
        self._on_pin = on_pin or _log_pin
        self._clock = clock
        self._wait = wait
        self._state = PinAuthState.PIN_REQUESTED

    @property
    def state(self) -> PinAuthState:
        """Current state of the flow."""
        return self._state

    def request_pin(self) -> PlexPin:
        """Request a new PIN from plex.tv.

        Raises:
            TransportError: If plex.tv rejects the request or is unreachable.
        """
        response = self._http.request(
            "POST", "/api/v2/pins", params={"strong": "false"}
        )
        pin = parse_model(PlexPin, decode_json(response))
        logger.debug("Requested Plex PIN %d (expires %s)", pin.id, pin.expires_at)
        return pin

    def check_pin(self, pin_id: int) -> str | None:
        """Check whether a PIN has been claimed.

        Returns:
            The auth token once claimed, otherwise None.

        Raises:
            ExpiredError: If plex.tv no longer knows the PIN (HTTP 404).
        """
        try:
            response = self._http.request("GET", f"/api/v2/pins/{pin_id}")
        except TransportError as e:
            if e.status == httpx.codes.NOT_FOUND:
                raise ExpiredError("PIN expired before it was claimed") from e
            raise
        pin = parse_model(PlexPin, decode_json(response))
        return pin.auth_token or None

    def validate_token(self, token: str) -> bool:
        """Check a stored token against plex.tv.

        Returns:
            True if plex.tv accepts the token, False if it answers 401.

        Raises:
            ServerOfflineError: If plex.tv is unreachable.
            TransportError: On any other failure.
        """
        try:
            self._http.request("GET", "/api/v2/user", headers=plex_headers(token))
        except AuthError:
            logger.info("Plex token rejected by plex.tv")
            return False
        return True

    def run(
        self, server_url: str = "", cancel_token: CancelToken | None = None
    ) -> AuthResult:
        """Run the full PIN flow.

        Args:
            server_url: Unused by Plex; accepted for a uniform flow interface.
            cancel_token: Optional token to abort polling.

        Returns:
            AuthResult with the claimed token.

        Raises:
            ExpiredError: If the PIN expires or the deadline passes.
            CancellationError: If cancelled while waiting.
            TransportError: If the PIN cannot be requested.
            AuthError: If plex.tv rejects the client.
        """
        self._state = PinAuthState.PIN_REQUESTED
        try:
            pin = self.request_pin()
        except KinoError:
            self._state = PinAuthState.FAILED
            raise

        self._state = PinAuthState.AWAITING_CLAIM
        self._on_pin(pin)

        token = self._poll(pin, cancel_token)
        self._state = PinAuthState.CLAIMED
        logger.info("Plex PIN %s claimed", pin.code)
        return AuthResult(token=token)

    def _poll(self, pin: PlexPin, cancel_token: CancelToken | None) -> str:
        deadline = self._clock() + self._config.timeout
        interval = self._config.initial_interval

        while True:
            if cancel_token is not None and cancel_token.is_cancelled:
                self._cancel()

            remaining = deadline - self._clock()
            if remaining <= 0:
                self._state = PinAuthState.EXPIRED
                raise ExpiredError("Timed out waiting for the PIN to be claimed")

            if self._wait(min(interval, remaining), cancel_token):
                self._cancel()

            try:
                token = self.check_pin(pin.id)
            except ExpiredError:
                self._state = PinAuthState.EXPIRED
                raise
            except AuthError:
                self._state = PinAuthState.FAILED
                raise
            except TransportError as e:
                logger.warning("PIN check failed, retrying: %s", e)
                continue

            if token:
                return token
            interval = min(interval * 2, self._config.max_interval)

    def _cancel(self) -> None:
        self._state = PinAuthState.CANCELLED
        raise CancellationError("PIN authentication cancelled")

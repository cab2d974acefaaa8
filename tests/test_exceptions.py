"""Tests for exceptions."""

import pytest
from kino.exceptions import (
    AuthError,
    CancellationError,
    ConfigError,
    ExpiredError,
    IdentityUnavailableError,
    KinoError,
    NotFoundError,
    PartialSyncError,
    PlaylistSeedRequiredError,
    ResponseParseError,
    ServerOfflineError,
    TransportError,
)


class TestExceptionStatusCodes:
    """Tests for HTTP status codes on exceptions."""

    @pytest.mark.parametrize(
        ("exception_class", "expected_status"),
        [
            (KinoError, 500),
            (ConfigError, 400),
            (TransportError, 502),
            (ServerOfflineError, 503),
            (AuthError, 401),
            (NotFoundError, 404),
            (ExpiredError, 410),
            (CancellationError, 499),
            (PlaylistSeedRequiredError, 400),
            (IdentityUnavailableError, 409),
        ],
        ids=[
            "base_error",
            "config_error",
            "transport_error",
            "server_offline",
            "auth_error",
            "not_found",
            "expired",
            "cancelled",
            "playlist_seed",
            "identity",
        ],
    )
    def test_exception_status_codes(
        self, exception_class: type[KinoError], expected_status: int
    ) -> None:
        """Each exception type should have the correct HTTP status code."""
        error = exception_class("test message")
        assert error.status_code == expected_status


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exception_class",
        [ConfigError, TransportError, AuthError, NotFoundError, ExpiredError],
    )
    def test_catch_all_with_base_class(
        self, exception_class: type[KinoError]
    ) -> None:
        """Should be able to catch all errors with KinoError."""
        with pytest.raises(KinoError) as exc_info:
            raise exception_class("test message")
        assert exc_info.value.message == "test message"

    @pytest.mark.parametrize(
        "exception_class", [ServerOfflineError, ResponseParseError]
    )
    def test_transport_subclasses(self, exception_class: type[KinoError]) -> None:
        """Offline and parse failures are transport errors."""
        assert issubclass(exception_class, TransportError)

    def test_auth_error_is_not_transport_error(self) -> None:
        """Auth failures are terminal, not transport failures."""
        assert not issubclass(AuthError, TransportError)


class TestTransportError:
    def test_carries_http_status(self) -> None:
        error = TransportError("boom", status=500)
        assert error.status == 500
        assert str(error) == "boom"

    def test_status_defaults_to_none(self) -> None:
        assert ServerOfflineError("offline").status is None


class TestPartialSyncError:
    def test_wraps_cause(self) -> None:
        cause = ServerOfflineError("connection refused")
        error = PartialSyncError("lib1", 42, cause)

        assert error.library_id == "lib1"
        assert error.loaded == 42
        assert error.cause is cause
        assert "lib1" in error.message
        assert "42" in error.message
        assert "connection refused" in error.message

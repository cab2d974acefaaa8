"""Authentication flow protocol and result model."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict

from kino.models.cancel import CancelToken


class AuthResult(BaseModel):
    """Credentials produced by a successful authentication.

    Attributes:
        token: Access token for the media server.
        user_id: Authenticated user's id, when the backend reports one.
        username: Authenticated user's display name.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    user_id: str | None = None
    username: str | None = None


class AuthFlowProtocol(Protocol):
    """Protocol for authentication strategies.

    Presentation concerns (showing a PIN, prompting for a password) are
    supplied as callbacks when the flow is constructed.
    """

    def run(
        self, server_url: str, cancel_token: CancelToken | None = None
    ) -> AuthResult:
        """Run the flow to completion."""
        ...

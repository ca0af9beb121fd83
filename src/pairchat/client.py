"""HTTP client for the pairchat REST API.

Every failure is raised as a RemoteError subclass so callers can handle the
three failure classes (unreachable, rejected, malformed) in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from pairchat.errors import MalformedResponse, RemoteRejected, RemoteUnreachable
from pairchat.logging import get_logger
from pairchat.models import (
    Message,
    User,
    message_adapter,
    message_list_adapter,
    user_list_adapter,
)

if TYPE_CHECKING:
    from pairchat.config import Config

log = get_logger("client")


class ChatApiClient:
    """Async client for ``/api/users`` and ``/api/messages``.

    Attributes:
        base_url: Backend root URL, e.g. ``http://localhost:3001``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Backend root URL.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used to stub the backend).
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: "Config") -> "ChatApiClient":
        return cls(
            config.client.api_base_url,
            timeout=config.client.request_timeout_seconds,
        )

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the underlying connection pool."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.DecodingError as e:
            raise MalformedResponse(f"{method} {path} returned an undecodable body") from e
        except httpx.RequestError as e:
            raise RemoteUnreachable(f"{method} {path} failed: {e!r}") from e

        if not response.is_success:
            raise RemoteRejected(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path} returned non-JSON body") from e

    @staticmethod
    def _validate(adapter: TypeAdapter, payload: Any, what: str) -> Any:
        try:
            return adapter.validate_python(payload)
        except ValidationError as e:
            raise MalformedResponse(f"Unexpected {what} payload: {e.error_count()} errors") from e

    async def get_users(self) -> list[User]:
        """Fetch the user list."""
        payload = await self._request("GET", "/api/users")
        return self._validate(user_list_adapter, payload, "users")

    async def get_messages(self, user: str) -> list[Message]:
        """Fetch every message the user sent or received."""
        payload = await self._request("GET", "/api/messages", params={"user": user})
        return self._validate(message_list_adapter, payload, "messages")

    async def post_message(self, message: Message) -> Message:
        """Persist a message; returns the server's (possibly enriched) copy."""
        payload = await self._request("POST", "/api/messages", json=message.to_wire())
        return self._validate(message_adapter, payload, "message")

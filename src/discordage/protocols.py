"""Protocol interfaces for swappable components.

Handlers and AppState reference these protocols, not the concrete
implementations. Tests use the in-memory cache and stubbed HTTP; the
service runs with the file cache and the real Discord/reCAPTCHA APIs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from discordage.models.cache import CacheEntry
    from discordage.verification import VerificationOutcome


class CacheProtocol(Protocol):
    """Interface for the response cache backend."""

    async def get(self, key: str) -> CacheEntry | None: ...

    async def put(self, key: str, payload: dict[str, Any]) -> None: ...


class DiscordClientProtocol(Protocol):
    """Interface for the Discord REST API calls the service needs."""

    async def get_current_user(self) -> dict[str, Any]: ...

    async def get_user(self, user_id: str) -> dict[str, Any]: ...

    async def list_guilds(self) -> list[dict[str, Any]]: ...

    async def search_guild_members(
        self, guild_id: str, query: str, limit: int = 1
    ) -> list[dict[str, Any]]: ...

    async def get_guild_preview(self, guild_id: str) -> dict[str, Any]: ...


class VerifierProtocol(Protocol):
    """Interface for the human-interaction token check."""

    async def verify(self, token: str, remote_ip: str | None = None) -> VerificationOutcome: ...

"""Discord REST API access.

All Discord traffic goes through a single DiscordClient instance shared
across requests. The DiscordClient receives an httpx.AsyncClient via
constructor injection; the lifespan owns the client lifecycle.

Every non-2xx answer and every transport failure is translated into a
DiscordAgeError so callers only ever deal with one exception type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from discordage.errors import DiscordAgeError, ErrorCode

if TYPE_CHECKING:
    from discordage.config import DiscordSettings

log = structlog.get_logger()

CDN_BASE_URL = "https://cdn.discordapp.com"


def build_http_client(settings: DiscordSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


def avatar_url(user_id: str, avatar_hash: str) -> str:
    return f"{CDN_BASE_URL}/avatars/{user_id}/{avatar_hash}.png"


def default_avatar_url(user_id: str) -> str:
    """Discord's fallback avatar for accounts without a custom one."""
    index = (int(user_id) >> 22) % 6
    return f"{CDN_BASE_URL}/embed/avatars/{index}.png"


def icon_url(guild_id: str, icon_hash: str) -> str:
    return f"{CDN_BASE_URL}/icons/{guild_id}/{icon_hash}.png"


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def parse_retry_after(response: httpx.Response) -> float | None:
    """Seconds to wait before retrying, from the body or the header."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("retry_after") is not None:
        try:
            return float(body["retry_after"])
        except (TypeError, ValueError):
            pass
    header = response.headers.get("retry-after")
    if header is not None:
        try:
            return float(header)
        except ValueError:
            return None
    return None


def error_from_response(response: httpx.Response, what: str) -> DiscordAgeError:
    """Classify a non-2xx Discord response."""
    status = response.status_code
    details = _response_details(response)

    if status == 404:
        return DiscordAgeError(
            code=ErrorCode.NOT_FOUND,
            message=f"{what} not found",
            details=details,
            upstream_status=status,
        )
    if status == 403:
        return DiscordAgeError(
            code=ErrorCode.FORBIDDEN,
            message=f"Access to {what} is forbidden",
            details=details,
            upstream_status=status,
        )
    if status == 429:
        return DiscordAgeError(
            code=ErrorCode.RATE_LIMITED,
            message="Rate limit exceeded",
            details=details,
            upstream_status=status,
            retry_after=parse_retry_after(response),
        )
    return DiscordAgeError(
        code=ErrorCode.UPSTREAM_ERROR,
        message="Failed to fetch Discord data",
        details=details,
        upstream_status=status,
    )


class DiscordClient:
    """Thin async wrapper over the handful of Discord endpoints we call."""

    def __init__(self, client: httpx.AsyncClient, settings: DiscordSettings) -> None:
        self._client = client
        self._base_url = settings.api_base_url.rstrip("/")
        self._bot_token = settings.bot_token
        self._guild_page_size = settings.guild_page_size

    def _headers(self) -> dict[str, str]:
        if not self._bot_token:
            return {}
        return {"Authorization": f"Bot {self._bot_token}"}

    async def _get(self, path: str, what: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.get(url, headers=self._headers(), params=params)
        except httpx.HTTPError as exc:
            log.warning("discord_request_failed", path=path, error=str(exc))
            raise DiscordAgeError(
                code=ErrorCode.UPSTREAM_ERROR,
                message="Failed to fetch Discord data",
                details=str(exc) or type(exc).__name__,
            ) from exc

        if not response.is_success:
            error = error_from_response(response, what)
            log.warning(
                "discord_request_rejected",
                path=path,
                status_code=response.status_code,
                code=error.code,
            )
            raise error

        log.debug("discord_request_complete", path=path, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise DiscordAgeError(
                code=ErrorCode.UPSTREAM_ERROR,
                message="Discord returned a malformed response",
                upstream_status=response.status_code,
            ) from exc

    async def get_current_user(self) -> dict[str, Any]:
        """Return the bot's own user object. Used to check the token at startup."""
        return await self._get("/users/@me", "Current user")

    async def get_user(self, user_id: str) -> dict[str, Any]:
        return await self._get(f"/users/{user_id}", f"User {user_id}")

    async def list_guilds(self) -> list[dict[str, Any]]:
        """Every guild the bot is a member of, in Discord's ascending-ID order."""
        guilds: list[dict[str, Any]] = []
        after: str | None = None
        while True:
            params: dict[str, Any] = {"limit": self._guild_page_size}
            if after is not None:
                params["after"] = after
            page = await self._get("/users/@me/guilds", "Guild list", params=params)
            guilds.extend(page)
            if len(page) < self._guild_page_size:
                return guilds
            after = page[-1]["id"]

    async def search_guild_members(
        self, guild_id: str, query: str, limit: int = 1
    ) -> list[dict[str, Any]]:
        return await self._get(
            f"/guilds/{guild_id}/members/search",
            f"Guild {guild_id}",
            params={"query": query, "limit": limit},
        )

    async def get_guild_preview(self, guild_id: str) -> dict[str, Any]:
        return await self._get(f"/guilds/{guild_id}/preview", f"Guild {guild_id}")

"""Entity resolution.

Turns an identifier into an EntityRecord using one of three strategies:
direct fetch by ID, member search across the bot's guilds, or (for
guilds) the preview fetcher in guild_preview.py. No knowledge of
AppState, HTTP routing, or the cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from discordage.errors import DiscordAgeError, ErrorCode
from discordage.models.entity import EntityKind, EntityRecord
from discordage.snowflake import decode, is_snowflake

if TYPE_CHECKING:
    from discordage.protocols import DiscordClientProtocol

log = structlog.get_logger()


def user_record(data: dict[str, Any]) -> EntityRecord:
    """Build a user EntityRecord from a Discord user object."""
    user_id = str(data["id"])
    return EntityRecord(
        kind=EntityKind.USER,
        id=user_id,
        name=data.get("username") or "N/A",
        created_at=decode(user_id),
        avatar=data.get("avatar"),
        is_bot=bool(data.get("bot", False)),
        locale=data.get("locale"),
        public_flags=data.get("public_flags") or 0,
        premium_type=data.get("premium_type") or 0,
        verified=bool(data.get("verified", False)),
        description=data.get("bio"),
    )


async def resolve_user(user_id: str, client: DiscordClientProtocol) -> EntityRecord:
    """Fetch a user directly by Snowflake.

    Raises DiscordAgeError: NOT_FOUND, RATE_LIMITED or UPSTREAM_ERROR.
    """
    data = await client.get_user(user_id)
    return user_record(data)


async def _search_guilds(username: str, client: DiscordClientProtocol) -> EntityRecord | None:
    """Search each guild in enumeration order; the first guild with a hit wins."""
    guilds = await client.list_guilds()
    log.debug("username_search_started", username=username, guild_count=len(guilds))

    for guild in guilds:
        guild_id = str(guild["id"])
        try:
            members = await client.search_guild_members(guild_id, username, limit=1)
        except DiscordAgeError as exc:
            if exc.code == ErrorCode.RATE_LIMITED:
                raise
            log.warning(
                "username_search_guild_skipped",
                guild_id=guild_id,
                code=exc.code,
                upstream_status=exc.upstream_status,
            )
            continue

        if members and members[0].get("user"):
            log.info("username_search_hit", username=username, guild_id=guild_id)
            return user_record(members[0]["user"])

    return None


async def resolve_user_by_username(
    username: str, client: DiscordClientProtocol
) -> EntityRecord:
    """Resolve a username via guild member search, falling back to ID lookup.

    Order (first hit wins):
      1. Member search in each guild the bot can see
      2. Direct fetch, if the identifier is itself a Snowflake
      3. NOT_FOUND
    """
    record = await _search_guilds(username, client)
    if record is not None:
        return record

    if is_snowflake(username):
        log.info("username_search_fallback_to_id", username=username)
        return await resolve_user(username, client)

    raise DiscordAgeError(
        code=ErrorCode.NOT_FOUND,
        message=f"User '{username}' not found in any accessible server",
        details="Make sure the bot shares a server with this user.",
    )

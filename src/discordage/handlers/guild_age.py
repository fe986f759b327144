"""Handler for GET /api/discord-age-guild/{guildId}.

Answers 200 with a degraded body when the guild is not discoverable.
Only live previews are cached, so a guild that later becomes
discoverable is picked up on the next request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from discordage.age import estimate
from discordage.cache import cache_key
from discordage.errors import DiscordAgeError, ErrorCode
from discordage.formatting import guild_age_output
from discordage.guild_preview import fetch_guild_preview
from discordage.models.responses import GuildIdInput

if TYPE_CHECKING:
    from discordage.state import AppState


async def handle(guild_id: str, state: AppState) -> dict:
    """Handle a guild lookup by Snowflake."""
    log = structlog.get_logger().bind(endpoint="guild_age", entity_id=guild_id)
    log.info("handler_called")

    try:
        validated = GuildIdInput(guild_id=guild_id)
    except ValidationError as exc:
        raise DiscordAgeError(
            code=ErrorCode.INVALID_INPUT,
            message="Invalid guild ID format",
            details="Guild ID must be a 17-19 digit number",
        ) from exc

    key = cache_key("guild", validated.guild_id)
    cached = await state.cache.get(key)
    if cached is not None:
        log.info("cache_hit")
        return cached.payload

    preview_settings = state.settings.guild_preview
    record = await fetch_guild_preview(
        state.discord,
        validated.guild_id,
        max_retries=preview_settings.max_retries,
        default_retry_after=preview_settings.default_retry_after_seconds,
        exhausted_policy=preview_settings.exhausted_policy,
    )
    age = estimate(record.created_at, state.clock(), state.settings.age.policy)
    payload = guild_age_output(record, age).model_dump(mode="json")

    if not record.degraded:
        await state.cache.put(key, payload)
    log.info("lookup_complete", degraded=record.degraded, age_days=age.age_in_days)
    return payload

"""Handler for GET /api/discord-age/{userId}."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from discordage.age import estimate
from discordage.cache import cache_key
from discordage.errors import DiscordAgeError, ErrorCode
from discordage.formatting import user_age_output
from discordage.models.responses import UserIdInput
from discordage.resolver import resolve_user

if TYPE_CHECKING:
    from discordage.state import AppState


async def handle(user_id: str, state: AppState) -> dict:
    """Handle a user lookup by Snowflake."""
    log = structlog.get_logger().bind(endpoint="user_age", entity_id=user_id)
    log.info("handler_called")

    try:
        validated = UserIdInput(user_id=user_id)
    except ValidationError as exc:
        raise DiscordAgeError(
            code=ErrorCode.INVALID_INPUT,
            message="Invalid user ID format",
            details="User ID must be a 17-19 digit number",
        ) from exc

    key = cache_key("user", validated.user_id)
    cached = await state.cache.get(key)
    if cached is not None:
        log.info("cache_hit")
        return cached.payload

    record = await resolve_user(validated.user_id, state.discord)
    age = estimate(record.created_at, state.clock(), state.settings.age.policy)
    payload = user_age_output(record, age).model_dump(mode="json")

    await state.cache.put(key, payload)
    log.info("lookup_complete", age_days=age.age_in_days)
    return payload

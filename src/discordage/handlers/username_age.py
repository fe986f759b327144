"""Handler for GET /api/discord-age-username/{username}.

The username has to be resolved before the user ID is known, so this
handler never reads the cache. It does write the result under the
resolved user's key, where the by-ID lookup will find it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from discordage.age import estimate
from discordage.cache import cache_key
from discordage.errors import DiscordAgeError, ErrorCode
from discordage.formatting import user_age_output
from discordage.models.responses import UsernameInput
from discordage.resolver import resolve_user_by_username

if TYPE_CHECKING:
    from discordage.state import AppState


async def handle(username: str, state: AppState) -> dict:
    log = structlog.get_logger().bind(endpoint="username_age", username=username)
    log.info("handler_called")

    try:
        validated = UsernameInput(username=username)
    except ValidationError as exc:
        raise DiscordAgeError(
            code=ErrorCode.INVALID_INPUT,
            message="Invalid username",
            details="Username must be 1-32 characters",
        ) from exc

    record = await resolve_user_by_username(validated.username, state.discord)
    age = estimate(record.created_at, state.clock(), state.settings.age.policy)
    payload = user_age_output(record, age).model_dump(mode="json")

    await state.cache.put(cache_key("user", record.id), payload)
    log.info("lookup_complete", entity_id=record.id, age_days=age.age_in_days)
    return payload

"""Handler for POST /api/discord.

The reCAPTCHA-gated user check. Receives AppState, runs the gate, the
cache lookup and the Discord fetch, and returns a plain dict. No
Starlette imports: server.py handles the HTTP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from discordage.age import estimate
from discordage.cache import cache_key
from discordage.discord_client import avatar_url
from discordage.errors import DiscordAgeError, ErrorCode
from discordage.formatting import us_short_date
from discordage.models.responses import DiscordCheckInput, DiscordCheckOutput
from discordage.resolver import resolve_user
from discordage.verification import VerificationOutcome

if TYPE_CHECKING:
    from discordage.state import AppState

PLACEHOLDER_AVATAR = "https://via.placeholder.com/50"


def _validate(body: Any) -> DiscordCheckInput:
    if not isinstance(body, dict):
        raise DiscordAgeError(
            code=ErrorCode.INVALID_INPUT,
            message="Invalid request body",
            details="Expected a JSON object with discord_id and recaptcha",
        )
    try:
        return DiscordCheckInput.model_validate(body)
    except ValidationError as exc:
        failed = {error["loc"][0] for error in exc.errors() if error["loc"]}
        if failed == {"recaptcha"}:
            raise DiscordAgeError(
                code=ErrorCode.INVALID_INPUT,
                message="Invalid reCAPTCHA token",
                details="reCAPTCHA token must be a string",
            ) from exc
        raise DiscordAgeError(
            code=ErrorCode.INVALID_INPUT,
            message="Invalid Discord ID",
            details="Discord ID must be a 17-19 digit number",
        ) from exc


async def _verify(token: str | None, remote_ip: str | None, state: AppState) -> None:
    if state.verifier is None:
        return

    if not token:
        raise DiscordAgeError(
            code=ErrorCode.INVALID_INPUT,
            message="reCAPTCHA token is required",
        )

    outcome = await state.verifier.verify(token, remote_ip)
    if outcome is VerificationOutcome.INVALID:
        raise DiscordAgeError(code=ErrorCode.VERIFICATION_FAILED, message="Invalid reCAPTCHA")
    if outcome is VerificationOutcome.SERVICE_ERROR:
        raise DiscordAgeError(
            code=ErrorCode.VERIFICATION_FAILED,
            message="reCAPTCHA verification failed",
        )


async def handle(body: Any, remote_ip: str | None, state: AppState) -> dict:
    """Handle a POST /api/discord request."""
    log = structlog.get_logger().bind(endpoint="check_user")

    validated = _validate(body)
    discord_id = validated.discord_id
    log = log.bind(entity_id=discord_id)
    log.info("handler_called")

    await _verify(validated.recaptcha, remote_ip, state)

    key = cache_key("discord", discord_id)
    cached = await state.cache.get(key)
    if cached is not None:
        log.info("cache_hit")
        return cached.payload

    record = await resolve_user(discord_id, state.discord)
    age = estimate(record.created_at, state.clock(), state.settings.age.policy)

    output = DiscordCheckOutput(
        discord_id=discord_id,
        username=record.name,
        avatar=avatar_url(discord_id, record.avatar) if record.avatar else PLACEHOLDER_AVATAR,
        estimated_creation_date=us_short_date(record.created_at),
        account_age=age.human_readable_age,
        age_days=age.age_in_days,
        is_bot=record.is_bot,
        locale=record.locale or "N/A",
    )
    payload = output.model_dump(mode="json")

    await state.cache.put(key, payload)
    log.info("lookup_complete", age_days=age.age_in_days)
    return payload

"""Guild preview lookup with bounded rate-limit backoff.

The preview endpoint only answers for discoverable guilds, so a missing or
forbidden guild is not an error here: the caller gets a degraded record
built from the Snowflake alone. Each attempt is classified into one of the
outcomes below and the loop acts on the classification, never on raw
status codes.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from discordage.errors import DiscordAgeError, ErrorCode
from discordage.models.entity import EntityKind, EntityRecord
from discordage.snowflake import decode

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from discordage.protocols import DiscordClientProtocol

log = structlog.get_logger()

MAX_RETRIES = 3
DEFAULT_RETRY_AFTER_SECONDS = 1.0

UNDISCOVERABLE_NAME = "Unknown (not publicly discoverable)"
UNDISCOVERABLE_DESCRIPTION = (
    "This server is not publicly discoverable. "
    "Only the creation date derived from its ID is available."
)


class PreviewOutcome(StrEnum):
    UNAVAILABLE = "unavailable"  # not found or forbidden: degrade now
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


class ExhaustedPolicy(StrEnum):
    TOO_MANY_REQUESTS = "too_many_requests"
    DEGRADE = "degrade"


def classify(error: DiscordAgeError) -> PreviewOutcome:
    if error.code in (ErrorCode.NOT_FOUND, ErrorCode.FORBIDDEN):
        return PreviewOutcome.UNAVAILABLE
    if error.code == ErrorCode.RATE_LIMITED:
        return PreviewOutcome.RATE_LIMITED
    return PreviewOutcome.FAILED


def degraded_guild_record(guild_id: str) -> EntityRecord:
    return EntityRecord(
        kind=EntityKind.GUILD,
        id=guild_id,
        name=UNDISCOVERABLE_NAME,
        created_at=decode(guild_id),
        description=UNDISCOVERABLE_DESCRIPTION,
        degraded=True,
    )


def guild_record(guild_id: str, data: dict[str, Any]) -> EntityRecord:
    """Build a live guild EntityRecord from a preview payload."""
    return EntityRecord(
        kind=EntityKind.GUILD,
        id=guild_id,
        name=data.get("name") or "Unknown",
        created_at=decode(guild_id),
        icon=data.get("icon"),
        approximate_member_count=data.get("approximate_member_count"),
        description=data.get("description"),
    )


async def fetch_guild_preview(
    client: DiscordClientProtocol,
    guild_id: str,
    *,
    max_retries: int = MAX_RETRIES,
    default_retry_after: float = DEFAULT_RETRY_AFTER_SECONDS,
    exhausted_policy: ExhaustedPolicy | str = ExhaustedPolicy.TOO_MANY_REQUESTS,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> EntityRecord:
    """Return a live or degraded record for ``guild_id``.

    Rate limits are retried after the advertised delay, up to
    ``max_retries`` attempts in total. When every attempt was rate limited
    the result depends on ``exhausted_policy``: raise RATE_LIMITED, or
    return the degraded record. The wait after the final attempt is
    skipped since no further request follows it.
    """
    fallback = degraded_guild_record(guild_id)
    glog = log.bind(guild_id=guild_id)

    attempt = 0
    while attempt < max_retries:
        try:
            data = await client.get_guild_preview(guild_id)
        except DiscordAgeError as exc:
            error = exc
            outcome = classify(exc)
        else:
            glog.info("guild_preview_fetched", attempt=attempt + 1)
            return guild_record(guild_id, data)

        if outcome is PreviewOutcome.UNAVAILABLE:
            glog.info("guild_preview_unavailable", code=error.code)
            return fallback

        attempt += 1

        if outcome is PreviewOutcome.RATE_LIMITED:
            retry_after = error.retry_after
            if retry_after is None:
                retry_after = default_retry_after
            glog.warning(
                "guild_preview_rate_limited",
                attempt=attempt,
                max_retries=max_retries,
                retry_after=retry_after,
            )
            if attempt < max_retries:
                await sleep(retry_after)
            continue

        glog.warning(
            "guild_preview_failed",
            attempt=attempt,
            max_retries=max_retries,
            code=error.code,
            upstream_status=error.upstream_status,
        )
        if attempt == max_retries:
            return fallback

    # Only reachable when the last attempt was rate limited.
    if ExhaustedPolicy(exhausted_policy) is ExhaustedPolicy.DEGRADE:
        glog.warning("guild_preview_retries_exhausted", policy="degrade")
        return fallback

    glog.warning("guild_preview_retries_exhausted", policy="too_many_requests")
    raise DiscordAgeError(
        code=ErrorCode.RATE_LIMITED,
        message="Rate limit exceeded",
        details=f"Guild preview still rate limited after {max_retries} attempts",
    )

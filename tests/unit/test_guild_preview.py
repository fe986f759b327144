"""Unit tests for the guild preview retry loop in guild_preview.py.

The Discord client is a stub that replays a scripted sequence of results;
``sleep`` is an AsyncMock so the tests observe the backoff without
waiting for it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, call

import pytest

from discordage.errors import DiscordAgeError, ErrorCode
from discordage.guild_preview import (
    UNDISCOVERABLE_DESCRIPTION,
    UNDISCOVERABLE_NAME,
    ExhaustedPolicy,
    PreviewOutcome,
    classify,
    fetch_guild_preview,
)

GUILD_ID = "81384788765712384"
GUILD_CREATED = datetime(2015, 8, 13, 13, 54, 5, 698000, tzinfo=UTC)

PREVIEW = {
    "id": GUILD_ID,
    "name": "Discord API",
    "icon": "iconhash",
    "approximate_member_count": 45000,
    "description": "Official API server",
}


def _rate_limited(retry_after: float | None = None) -> DiscordAgeError:
    return DiscordAgeError(
        code=ErrorCode.RATE_LIMITED,
        message="Rate limit exceeded",
        upstream_status=429,
        retry_after=retry_after,
    )


def _error(code: ErrorCode, status: int | None = None) -> DiscordAgeError:
    return DiscordAgeError(code=code, message="boom", upstream_status=status)


class ScriptedDiscord:
    """Returns or raises the next scripted item on each preview call."""

    def __init__(self, script: list[dict | DiscordAgeError]) -> None:
        self.script = list(script)
        self.preview_calls = 0

    async def get_guild_preview(self, guild_id: str) -> dict[str, Any]:
        self.preview_calls += 1
        item = self.script.pop(0)
        if isinstance(item, DiscordAgeError):
            raise item
        return item


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------


class TestClassify:
    @pytest.mark.parametrize("code", [ErrorCode.NOT_FOUND, ErrorCode.FORBIDDEN])
    def test_unavailable(self, code: ErrorCode) -> None:
        assert classify(_error(code)) is PreviewOutcome.UNAVAILABLE

    def test_rate_limited(self) -> None:
        assert classify(_rate_limited()) is PreviewOutcome.RATE_LIMITED

    def test_everything_else_failed(self) -> None:
        assert classify(_error(ErrorCode.UPSTREAM_ERROR, 502)) is PreviewOutcome.FAILED


# ---------------------------------------------------------------------------
# fetch_guild_preview
# ---------------------------------------------------------------------------


class TestFetchGuildPreview:
    async def test_success_returns_live_record(self) -> None:
        client = ScriptedDiscord([PREVIEW])
        sleep = AsyncMock()
        record = await fetch_guild_preview(client, GUILD_ID, sleep=sleep)

        assert record.degraded is False
        assert record.name == "Discord API"
        assert record.icon == "iconhash"
        assert record.approximate_member_count == 45000
        assert record.description == "Official API server"
        assert record.created_at == GUILD_CREATED
        sleep.assert_not_awaited()

    async def test_success_with_sparse_payload_uses_defaults(self) -> None:
        record = await fetch_guild_preview(ScriptedDiscord([{"id": GUILD_ID}]), GUILD_ID)
        assert record.name == "Unknown"
        assert record.icon is None
        assert record.approximate_member_count is None
        assert record.description is None

    @pytest.mark.parametrize(
        ("code", "status"), [(ErrorCode.NOT_FOUND, 404), (ErrorCode.FORBIDDEN, 403)]
    )
    async def test_unavailable_degrades_without_retry(
        self, code: ErrorCode, status: int
    ) -> None:
        client = ScriptedDiscord([_error(code, status)])
        sleep = AsyncMock()
        record = await fetch_guild_preview(client, GUILD_ID, sleep=sleep)

        assert record.degraded is True
        assert record.name == UNDISCOVERABLE_NAME
        assert record.description == UNDISCOVERABLE_DESCRIPTION
        assert record.created_at == GUILD_CREATED
        assert client.preview_calls == 1
        sleep.assert_not_awaited()

    async def test_rate_limit_then_success(self) -> None:
        client = ScriptedDiscord([_rate_limited(0.5), PREVIEW])
        sleep = AsyncMock()
        record = await fetch_guild_preview(client, GUILD_ID, sleep=sleep)

        assert record.degraded is False
        assert client.preview_calls == 2
        sleep.assert_awaited_once_with(0.5)

    async def test_missing_retry_after_uses_default(self) -> None:
        client = ScriptedDiscord([_rate_limited(None), PREVIEW])
        sleep = AsyncMock()
        await fetch_guild_preview(client, GUILD_ID, default_retry_after=1.0, sleep=sleep)
        sleep.assert_awaited_once_with(1.0)

    async def test_three_rate_limits_surface_429_by_default(self) -> None:
        client = ScriptedDiscord([_rate_limited(0.1), _rate_limited(0.2), _rate_limited(0.3)])
        sleep = AsyncMock()
        with pytest.raises(DiscordAgeError) as exc_info:
            await fetch_guild_preview(client, GUILD_ID, sleep=sleep)

        assert exc_info.value.code == ErrorCode.RATE_LIMITED
        assert exc_info.value.status_code == 429
        assert client.preview_calls == 3
        # No wait after the final attempt
        assert sleep.await_args_list == [call(0.1), call(0.2)]

    async def test_three_rate_limits_degrade_when_configured(self) -> None:
        client = ScriptedDiscord([_rate_limited(), _rate_limited(), _rate_limited()])
        record = await fetch_guild_preview(
            client,
            GUILD_ID,
            exhausted_policy=ExhaustedPolicy.DEGRADE,
            sleep=AsyncMock(),
        )
        assert record.degraded is True
        assert client.preview_calls == 3

    async def test_exhausted_policy_accepts_string(self) -> None:
        client = ScriptedDiscord([_rate_limited(), _rate_limited(), _rate_limited()])
        record = await fetch_guild_preview(
            client, GUILD_ID, exhausted_policy="degrade", sleep=AsyncMock()
        )
        assert record.degraded is True

    async def test_other_failures_degrade_after_max_retries(self) -> None:
        client = ScriptedDiscord(
            [
                _error(ErrorCode.UPSTREAM_ERROR, 500),
                _error(ErrorCode.UPSTREAM_ERROR, 502),
                _error(ErrorCode.UPSTREAM_ERROR),
            ]
        )
        sleep = AsyncMock()
        record = await fetch_guild_preview(client, GUILD_ID, sleep=sleep)

        assert record.degraded is True
        assert client.preview_calls == 3
        sleep.assert_not_awaited()

    async def test_failure_then_success(self) -> None:
        client = ScriptedDiscord([_error(ErrorCode.UPSTREAM_ERROR, 500), PREVIEW])
        record = await fetch_guild_preview(client, GUILD_ID, sleep=AsyncMock())
        assert record.degraded is False
        assert client.preview_calls == 2

    async def test_rate_limit_then_failure_counts_both_attempts(self) -> None:
        client = ScriptedDiscord(
            [
                _rate_limited(0.1),
                _error(ErrorCode.UPSTREAM_ERROR, 500),
                _error(ErrorCode.UPSTREAM_ERROR, 500),
            ]
        )
        record = await fetch_guild_preview(client, GUILD_ID, sleep=AsyncMock())
        assert record.degraded is True
        assert client.preview_calls == 3

    async def test_rate_limited_last_attempt_after_failures(self) -> None:
        client = ScriptedDiscord(
            [
                _error(ErrorCode.UPSTREAM_ERROR, 500),
                _error(ErrorCode.UPSTREAM_ERROR),
                _rate_limited(),
            ]
        )
        with pytest.raises(DiscordAgeError) as exc_info:
            await fetch_guild_preview(client, GUILD_ID, sleep=AsyncMock())
        assert exc_info.value.code == ErrorCode.RATE_LIMITED

    async def test_custom_retry_bound(self) -> None:
        client = ScriptedDiscord([_rate_limited()] * 5)
        with pytest.raises(DiscordAgeError):
            await fetch_guild_preview(client, GUILD_ID, max_retries=5, sleep=AsyncMock())
        assert client.preview_calls == 5

"""Integration test fixtures.

Provides a fully wired AppState (in-memory cache, real DiscordClient and
RecaptchaVerifier over a shared httpx client whose traffic respx stubs)
and an httpx client that drives the Starlette app in-process. Settings
and the shared httpx client come from tests/conftest.py.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from discordage.cache import MemoryCache
from discordage.server import create_app
from discordage.state import AppState
from discordage.verification import RecaptchaVerifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from discordage.config import Settings
    from discordage.discord_client import DiscordClient
    from discordage.models.cache import CacheEntry

NOW = datetime(2026, 1, 1, tzinfo=UTC)


class RecordingCache(MemoryCache):
    """MemoryCache that remembers which keys were read and written."""

    def __init__(self) -> None:
        super().__init__(clock=lambda: NOW)
        self.reads: list[str] = []
        self.writes: list[str] = []

    async def get(self, key: str) -> CacheEntry | None:
        self.reads.append(key)
        return await super().get(key)

    async def put(self, key: str, payload: dict[str, Any]) -> None:
        self.writes.append(key)
        await super().put(key, payload)


@pytest.fixture()
def recording_cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture()
def app_state(
    settings: Settings,
    http_client: httpx.AsyncClient,
    discord_client: DiscordClient,
    recording_cache: RecordingCache,
) -> AppState:
    return AppState(
        settings=settings,
        cache=recording_cache,
        discord=discord_client,
        verifier=RecaptchaVerifier(
            http_client,
            secret_key=settings.recaptcha.secret_key,
            verify_url=settings.recaptcha.verify_url,
        ),
        http_client=http_client,
        bot_ready=True,
        clock=lambda: NOW,
    )


@pytest.fixture()
async def client(app_state: AppState) -> AsyncIterator[httpx.AsyncClient]:
    """In-process client for the app; never touches the network."""
    app = create_app(state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client

"""Shared test fixtures for the discordage test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from discordage.config import Settings
from discordage.discord_client import DiscordClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

API_BASE = "https://discord.test/api/v10"
RECAPTCHA_URL = "https://recaptcha.test/siteverify"

# 2016-04-30T11:18:25.796Z
USER_ID = "175928847299117063"
# 2015-08-13T13:54:05.698Z
GUILD_ID = "81384788765712384"


@pytest.fixture()
def settings() -> Settings:
    """Settings pointed at fake hosts, with the in-memory cache."""
    return Settings(
        discord={"api_base_url": API_BASE, "bot_token": "test-token"},
        recaptcha={"enabled": True, "secret_key": "test-secret", "verify_url": RECAPTCHA_URL},
        cache={"backend": "memory"},
    )


@pytest.fixture()
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def discord_client(http_client: httpx.AsyncClient, settings: Settings) -> DiscordClient:
    return DiscordClient(http_client, settings.discord)


@pytest.fixture()
def user_payload() -> dict:
    """A Discord user object as returned by GET /users/{id}."""
    return {
        "id": USER_ID,
        "username": "alice",
        "avatar": "a1b2c3",
        "discriminator": "0",
        "public_flags": 64,
        "locale": "en-US",
    }

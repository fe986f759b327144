"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and handed to every endpoint handler. Tests build one directly with an
in-memory cache and a stubbed Discord client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from discordage.config import Settings
    from discordage.protocols import CacheProtocol, DiscordClientProtocol, VerifierProtocol


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every handler."""

    settings: Settings
    cache: CacheProtocol
    discord: DiscordClientProtocol

    # None when the reCAPTCHA gate is disabled
    verifier: VerifierProtocol | None = None
    http_client: httpx.AsyncClient | None = None
    bot_ready: bool = False
    clock: Callable[[], datetime] = field(default=_utcnow)

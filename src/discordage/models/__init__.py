from __future__ import annotations

from discordage.models.cache import CacheEntry
from discordage.models.entity import AgeEstimate, EntityKind, EntityRecord
from discordage.models.responses import (
    DiscordCheckInput,
    DiscordCheckOutput,
    GuildAgeOutput,
    GuildIdInput,
    HealthOutput,
    UserAgeOutput,
    UserIdInput,
    UsernameInput,
)

__all__ = [
    # entity
    "EntityKind",
    "EntityRecord",
    "AgeEstimate",
    # cache
    "CacheEntry",
    # endpoints
    "DiscordCheckInput",
    "DiscordCheckOutput",
    "UserIdInput",
    "UsernameInput",
    "UserAgeOutput",
    "GuildIdInput",
    "GuildAgeOutput",
    "HealthOutput",
]

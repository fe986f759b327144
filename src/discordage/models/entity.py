from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class EntityKind(StrEnum):
    USER = "user"
    GUILD = "guild"


class EntityRecord(BaseModel):
    """Identity data for a user or guild, live or synthesized from its Snowflake."""

    kind: EntityKind
    id: str
    name: str
    created_at: datetime

    # Users
    avatar: str | None = None  # Avatar hash, not a URL
    is_bot: bool = False
    locale: str | None = None
    public_flags: int = 0
    premium_type: int = 0
    verified: bool = False

    # Guilds
    icon: str | None = None  # Icon hash, not a URL
    approximate_member_count: int | None = None

    description: str | None = None
    degraded: bool = False  # True when built from the Snowflake alone


class AgeEstimate(BaseModel):
    human_readable_age: str
    age_in_days: int

"""Endpoint input validation and response bodies.

Response field names mirror the JSON keys clients already consume, which
is why snake_case and camelCase are mixed here.
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from discordage.snowflake import is_snowflake


def _check_snowflake(value: str, label: str) -> str:
    if not is_snowflake(value):
        raise ValueError(f"{label} must be a 17-19 digit number")
    return value


class DiscordCheckInput(BaseModel):
    discord_id: str
    recaptcha: str | None = None

    @field_validator("discord_id")
    @classmethod
    def validate_discord_id(cls, v: str) -> str:
        return _check_snowflake(v, "Discord ID")


class UserIdInput(BaseModel):
    user_id: str

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return _check_snowflake(v, "User ID")


class UsernameInput(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username must not be empty")
        if len(v) > 32:
            raise ValueError("Username must be at most 32 characters")
        return v


class GuildIdInput(BaseModel):
    guild_id: str

    @field_validator("guild_id")
    @classmethod
    def validate_guild_id(cls, v: str) -> str:
        return _check_snowflake(v, "Guild ID")


class DiscordCheckOutput(BaseModel):
    """Body of POST /api/discord."""

    discord_id: str
    username: str
    avatar: str
    estimated_creation_date: str  # M/D/YYYY
    account_age: str
    age_days: int
    is_bot: bool
    locale: str
    estimation_confidence: str = "High"
    accuracy_range: str = "Exact"


class UserAgeOutput(BaseModel):
    """Body of the user lookups, by ID and by username."""

    userId: str
    username: str
    creationDate: str  # ISO 8601
    accountAge: str
    age_days: int
    avatar: str
    publicFlags: int
    premiumType: int
    verified: bool
    description: str
    locale: str


class GuildAgeOutput(BaseModel):
    guildId: str
    name: str
    creationDate: str  # ISO 8601
    accountAge: str
    age_days: int
    icon: str | None
    approximate_member_count: int | None
    memberCount: int | None
    description: str
    region: str = "N/A"


class HealthOutput(BaseModel):
    status: str
    botReady: bool
    timestamp: str

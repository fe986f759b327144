"""Rendering of EntityRecords into endpoint response bodies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from discordage.discord_client import avatar_url, default_avatar_url, icon_url
from discordage.models.responses import GuildAgeOutput, UserAgeOutput

if TYPE_CHECKING:
    from datetime import datetime

    from discordage.models.entity import AgeEstimate, EntityRecord

NO_DESCRIPTION = "No description available"


def iso_timestamp(dt: datetime) -> str:
    """``2016-04-30T11:18:25.796Z``, the format JavaScript clients expect."""
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def us_short_date(dt: datetime) -> str:
    """``4/30/2016``, month and day without zero padding."""
    return f"{dt.month}/{dt.day}/{dt.year}"


def user_age_output(record: EntityRecord, age: AgeEstimate) -> UserAgeOutput:
    return UserAgeOutput(
        userId=record.id,
        username=record.name,
        creationDate=iso_timestamp(record.created_at),
        accountAge=age.human_readable_age,
        age_days=age.age_in_days,
        avatar=(
            avatar_url(record.id, record.avatar) if record.avatar else default_avatar_url(record.id)
        ),
        publicFlags=record.public_flags,
        premiumType=record.premium_type,
        verified=record.verified,
        description=record.description or NO_DESCRIPTION,
        locale=record.locale or "N/A",
    )


def guild_age_output(record: EntityRecord, age: AgeEstimate) -> GuildAgeOutput:
    return GuildAgeOutput(
        guildId=record.id,
        name=record.name,
        creationDate=iso_timestamp(record.created_at),
        accountAge=age.human_readable_age,
        age_days=age.age_in_days,
        icon=icon_url(record.id, record.icon) if record.icon else None,
        approximate_member_count=record.approximate_member_count,
        memberCount=record.approximate_member_count,
        description=record.description or NO_DESCRIPTION,
    )

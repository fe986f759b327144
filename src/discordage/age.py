"""Account age estimation.

Two calendar policies are supported; the service applies exactly one,
selected by ``age.policy`` in the settings:

- ``day_bucket``: whole days since creation, split into 365-day years
  and 30-day months.
- ``calendar``: field-wise year/month/day subtraction with borrowing.

``age_in_days`` is ``floor((now - created) / 1 day)`` under both policies.
When ``now`` precedes ``created`` the negative parts are reported as-is.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from enum import StrEnum

from discordage.models.entity import AgeEstimate

_ONE_DAY = timedelta(days=1)


class AgePolicy(StrEnum):
    DAY_BUCKET = "day_bucket"
    CALENDAR = "calendar"


def age_in_days(created: datetime, now: datetime) -> int:
    """Whole days elapsed, floored (negative when ``now < created``)."""
    return (now - created) // _ONE_DAY


def _rem(a: int, b: int) -> int:
    """Remainder carrying the dividend's sign (truncated division)."""
    return -(-a % b) if a < 0 else a % b


def _format(years: int, months: int, days: int) -> str:
    return f"{years} years, {months} months, {days} days"


def _day_bucket(created: datetime, now: datetime) -> tuple[int, int, int]:
    total_days = age_in_days(created, now)
    years = total_days // 365
    months = _rem(total_days, 365) // 30
    days = _rem(total_days, 30)
    return years, months, days


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def _calendar_fields(created: datetime, now: datetime) -> tuple[int, int, int]:
    months = (now.year - created.year) * 12 + (now.month - created.month)
    days = now.day - created.day

    year, month = now.year, now.month
    if days < 0:
        year, month = _previous_month(year, month)
        months -= 1
        days += calendar.monthrange(year, month)[1]
    # A 31st seen from early March needs a second borrow, from January.
    while days < 0 and months > 0:
        year, month = _previous_month(year, month)
        months -= 1
        days += calendar.monthrange(year, month)[1]

    # Floor division borrows 12 months whenever the month part is negative
    years, months = divmod(months, 12)
    return years, months, days


def estimate(
    created: datetime,
    now: datetime,
    policy: AgePolicy | str = AgePolicy.DAY_BUCKET,
) -> AgeEstimate:
    """Compute the human-readable age and whole-day count for ``created``."""
    if AgePolicy(policy) is AgePolicy.CALENDAR:
        years, months, days = _calendar_fields(created, now)
    else:
        years, months, days = _day_bucket(created, now)

    return AgeEstimate(
        human_readable_age=_format(years, months, days),
        age_in_days=age_in_days(created, now),
    )

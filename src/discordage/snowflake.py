"""Discord Snowflake decoding.

A Snowflake is a 64-bit unsigned integer whose high 42 bits hold the
milliseconds elapsed since the Discord epoch (2015-01-01T00:00:00Z).
Pure functions only: no I/O, no knowledge of HTTP or AppState.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

DISCORD_EPOCH_MS = 1420070400000

SNOWFLAKE_PATTERN = re.compile(r"^[0-9]{17,19}$")

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def is_snowflake(value: object) -> bool:
    """Return True if ``value`` is a string of 17-19 ASCII digits.

    Nineteen digits always fit in an unsigned 64-bit integer.
    """
    return isinstance(value, str) and SNOWFLAKE_PATTERN.fullmatch(value) is not None


def timestamp_ms(snowflake: str | int) -> int:
    """Return the Unix timestamp (ms) embedded in a Snowflake."""
    return (int(snowflake) >> 22) + DISCORD_EPOCH_MS


def decode(snowflake: str | int) -> datetime:
    """Decode a Snowflake into its aware UTC creation instant.

    Callers validate the format with :func:`is_snowflake` first; this never
    fails for well-formed input. Integer arithmetic throughout, so the
    result is exact to the millisecond.
    """
    return _UNIX_EPOCH + timedelta(milliseconds=timestamp_ms(snowflake))

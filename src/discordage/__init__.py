"""discordage: estimate the creation date and age of Discord users and guilds.

The version string is reported by ``GET /`` and in the startup log line.
"""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION = "discordage"
UNKNOWN_VERSION = "0.0.0+unknown"


def _installed_version() -> str:
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        # Running from a checkout that was never pip-installed
        warnings.warn(
            f"No installed metadata for {DISTRIBUTION!r}; reporting version {UNKNOWN_VERSION!r}.",
            RuntimeWarning,
            stacklevel=2,
        )
        return UNKNOWN_VERSION


__version__ = _installed_version()

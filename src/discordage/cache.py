"""Per-entity response cache with a fixed TTL.

``FileCache`` stores one JSON file per key (``<kind>_<id>.json``) holding
``{"timestamp": <epoch ms>, "data": <response payload>}``. ``MemoryCache``
keeps the same contract in a dict.

Entries older than the TTL are reported as misses but left in place; the
next successful lookup overwrites them. There is no size bound and no
locking: concurrent writers to the same key race and the last write wins.

All file operations catch ``OSError`` and decoding errors internally:
read failures are logged and treated as a miss, write failures are logged
and ignored. Cache problems never fail a request.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from discordage.models.cache import CacheEntry

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

log = structlog.get_logger()

DEFAULT_TTL_SECONDS = 3600


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _from_epoch_ms(ms: int) -> datetime:
    return datetime(1970, 1, 1, tzinfo=UTC) + timedelta(milliseconds=ms)


def cache_key(kind: str, entity_id: str) -> str:
    return f"{kind}_{entity_id}"


class MemoryCache:
    """In-process cache implementing CacheProtocol."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            log.debug("cache_stale", key=key)
            return None
        return entry

    async def put(self, key: str, payload: dict[str, Any]) -> None:
        self._entries[key] = CacheEntry(key=key, stored_at=self._clock(), payload=payload)


class FileCache:
    """JSON-file cache implementing CacheProtocol."""

    def __init__(
        self,
        directory: Path,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._directory = directory
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def _read(self, key: str) -> CacheEntry | None:
        path = self._path(key)
        if not path.is_file():
            return None
        raw = json.loads(path.read_text(encoding="utf-8"))
        return CacheEntry(
            key=key,
            stored_at=_from_epoch_ms(int(raw["timestamp"])),
            payload=raw["data"],
        )

    def _write(self, key: str, document: dict[str, Any]) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(document), encoding="utf-8")

    async def get(self, key: str) -> CacheEntry | None:
        """Read an entry. Returns ``None`` on miss, expiry, or read failure."""
        try:
            entry = await asyncio.to_thread(self._read, key)
        except (OSError, ValueError, KeyError, TypeError, OverflowError):
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            log.debug("cache_stale", key=key)
            return None
        return entry

    async def put(self, key: str, payload: dict[str, Any]) -> None:
        """Write an entry. Non-fatal on failure."""
        document = {"timestamp": _to_epoch_ms(self._clock()), "data": payload}
        try:
            await asyncio.to_thread(self._write, key, document)
        except (OSError, TypeError, ValueError):
            log.warning("cache_write_error", key=key, exc_info=True)

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A cached endpoint response for one entity."""

    key: str  # "<kind>_<id>", also the file stem on disk
    stored_at: datetime
    payload: dict[str, Any]  # Full response body, returned verbatim on a hit

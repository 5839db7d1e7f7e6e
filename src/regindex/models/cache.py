from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class IndexCacheEntry(BaseModel):
    """Cached serialized index for a registry location."""

    location: str
    payload: dict[str, Any]  # Index.serialize() output
    fetched_at: datetime
    expires_at: datetime
    stale: bool = False

"""Archive listing and cleanup schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel


class ArchivedEntry(BaseModel):
    """Archived row with the days left before it may be purged."""

    id: int
    name: str
    deleted_at: datetime
    days_until_purge: int


class CleanupResponse(BaseModel):
    message: str
    count: int
    failed: List[int] = []


class MessageResponse(BaseModel):
    message: str

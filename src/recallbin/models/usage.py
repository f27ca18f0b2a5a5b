"""Daily usage counter and quota snapshot models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UsageCounter(BaseModel):
    """One document per user per UTC calendar day; absence means zero."""

    date: str = Field(..., description="UTC date key, YYYY-MM-DD")
    ai_requests: int = Field(default=0, ge=0)
    last_request_at: Optional[datetime] = None


class QuotaSnapshot(BaseModel):
    """Result of a quota check or a read of the current counter."""

    allowed: bool = True
    used: int
    limit: int
    remaining: int
    reset_date: str = Field(..., description="Next UTC midnight, ISO-8601")

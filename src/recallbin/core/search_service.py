"""Bounded-window search with in-memory filtering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from ..errors import InvalidInputError
from ..models.config import AppConfig
from ..models.item import SavedItem
from .item_manager import ItemManager

logger = logging.getLogger(__name__)


class SearchFilters(BaseModel):
    """Search predicates; every field is optional."""

    text_query: Optional[str] = None
    category: Optional[str] = None
    content_type: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    collection_id: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


@dataclass
class SearchResult:
    items: List[SavedItem]
    total: int


def parse_date_bound(value: str, end_of_day: bool = False) -> datetime:
    """Parse a YYYY-MM-DD date or ISO timestamp into an aware UTC datetime.

    With ``end_of_day`` the result is moved to 23:59:59.999999 of its date
    so that an inclusive upper bound covers the whole calendar day.

    Raises:
        InvalidInputError: If the value cannot be parsed
    """
    text = (value or "").strip()
    try:
        if len(text) == 10:
            parsed = datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise InvalidInputError(f"Invalid date: {value!r}") from e

    parsed = parsed.astimezone(timezone.utc)
    if end_of_day:
        parsed = datetime.combine(parsed.date(), time.max, tzinfo=timezone.utc)
    return parsed


def searchable_text(item: SavedItem) -> List[str]:
    """Fields a text query is matched against, lowercased."""
    ai = item.ai_output
    return [
        ((ai.summary if ai else None) or "").lower(),
        " ".join(ai.tags if ai else []).lower(),
        " ".join(ai.key_ideas if ai else []).lower(),
        (item.display_title or "").lower(),
    ]


def matches_text(item: SavedItem, query: str) -> bool:
    needle = query.lower()
    return any(needle in field for field in searchable_text(item))


class SearchService:
    """Fetches the most recent window of items and filters it in memory.

    Only the collection predicate is applied by the store; every other
    filter sees just the newest ``limit`` items, not the full history.
    """

    def __init__(self, config: AppConfig, item_manager: ItemManager):
        self.config = config
        self.item_manager = item_manager

    async def search(self, user_id: str, filters: SearchFilters) -> SearchResult:
        limit = filters.limit or self.config.search_window_size
        date_from = parse_date_bound(filters.date_from) if filters.date_from else None
        date_to = parse_date_bound(filters.date_to, end_of_day=True) if filters.date_to else None

        items = await self.item_manager.list_recent(
            user_id, limit=limit, collection_id=filters.collection_id
        )

        if filters.text_query and filters.text_query.strip():
            query = filters.text_query.strip()
            items = [item for item in items if matches_text(item, query)]

        if filters.category:
            items = [
                item for item in items
                if item.ai_output is not None and item.ai_output.category == filters.category
            ]

        if filters.content_type:
            items = [
                item for item in items
                if item.ai_output is not None and item.ai_output.content_type == filters.content_type
            ]

        if date_from is not None:
            items = [item for item in items if _utc(item.created_at) >= date_from]
        if date_to is not None:
            items = [item for item in items if _utc(item.created_at) <= date_to]

        logger.debug(f"Search for user {user_id} returned {len(items)} items ({filters.as_dict()})")
        return SearchResult(items=items, total=len(items))


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

"""On-demand review reminders computed from item timestamps."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..errors import ItemNotFoundError
from ..models.item import SavedItem, to_iso, utc_now
from .document_store import ITEMS, DocumentNotFoundError, DocumentStore, user_collection
from .item_manager import ItemManager

logger = logging.getLogger(__name__)

DUE_WINDOW_START_DAYS = 8
DUE_WINDOW_END_DAYS = 6
RECENTLY_VIEWED_DAYS = 6
STALE_AFTER_DAYS = 7


class ReminderService:
    """Pull-based reminders; nothing is scheduled or persisted."""

    def __init__(self, store: DocumentStore, item_manager: ItemManager):
        self.store = store
        self.item_manager = item_manager

    async def get_due_items(self, user_id: str, now: Optional[datetime] = None) -> List[SavedItem]:
        """Items created 6-8 days ago that were not viewed in the last 6 days."""
        now = now or utc_now()
        window_start = now - timedelta(days=DUE_WINDOW_START_DAYS)
        window_end = now - timedelta(days=DUE_WINDOW_END_DAYS)
        viewed_cutoff = timedelta(days=RECENTLY_VIEWED_DAYS)

        due = []
        for item in await self.item_manager.list_recent(user_id):
            created = _utc(item.created_at)
            if not (window_start <= created <= window_end):
                continue
            if item.last_viewed_at is not None and now - _utc(item.last_viewed_at) <= viewed_cutoff:
                continue
            due.append(item)
        return due

    async def mark_viewed(self, user_id: str, item_id: str) -> SavedItem:
        """Record that the user opened the item.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        stamp = to_iso(utc_now())
        try:
            doc = await self.store.update(
                user_collection(user_id, ITEMS),
                item_id,
                {"last_viewed_at": stamp, "updated_at": stamp},
            )
        except DocumentNotFoundError:
            raise ItemNotFoundError(item_id)

        logger.debug(f"Marked item {item_id} viewed for user {user_id}")
        return SavedItem.from_document(doc.id, doc.data)

    async def get_stats(self, user_id: str, now: Optional[datetime] = None) -> dict:
        """Count items older than a week that were not viewed in the last week."""
        now = now or utc_now()
        cutoff = now - timedelta(days=STALE_AFTER_DAYS)

        unread = 0
        for item in await self.item_manager.list_recent(user_id):
            if _utc(item.created_at) > cutoff:
                continue
            if item.last_viewed_at is None or _utc(item.last_viewed_at) <= cutoff:
                unread += 1

        message = f"You have {unread} items to review!" if unread > 0 else "All caught up!"
        return {"unread_count": unread, "message": message}


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

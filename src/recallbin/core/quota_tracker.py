"""Per-user daily quota for enrichment-consuming saves."""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from ..models.usage import QuotaSnapshot, UsageCounter
from .document_store import USAGE, DocumentStore, user_collection

logger = logging.getLogger(__name__)


def today_key(now: Optional[datetime] = None) -> str:
    """UTC date string used as the usage document id."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date().isoformat()


def next_reset(now: Optional[datetime] = None) -> datetime:
    """Next UTC midnight."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=timezone.utc)


class QuotaTracker:
    """Counts AI requests per user per UTC day against a fixed ceiling.

    The counter is read and then written without isolation, so concurrent
    reservations may under-count. Store failures fail open.
    """

    def __init__(self, store: DocumentStore, daily_limit: int = 20):
        self.store = store
        self.daily_limit = daily_limit

    def _snapshot(self, used: int, allowed: bool, now: datetime) -> QuotaSnapshot:
        return QuotaSnapshot(
            allowed=allowed,
            used=used,
            limit=self.daily_limit,
            remaining=max(0, self.daily_limit - used),
            reset_date=next_reset(now).isoformat(),
        )

    async def _read_counter(self, user_id: str, date_key: str) -> int:
        doc = await self.store.get(user_collection(user_id, USAGE), date_key)
        if doc is None:
            return 0
        return UsageCounter(**{**doc.data, "date": date_key}).ai_requests

    async def check_and_reserve(self, user_id: str) -> QuotaSnapshot:
        """Reserve one AI request for today if the ceiling allows it.

        Returns a snapshot with ``allowed=False`` and ``remaining=0`` when
        the ceiling is reached; otherwise increments the counter and
        returns the post-increment figures.
        """
        now = datetime.now(timezone.utc)
        date_key = today_key(now)

        try:
            used = await self._read_counter(user_id, date_key)

            if used >= self.daily_limit:
                logger.info(f"Daily quota exhausted for user {user_id} ({used}/{self.daily_limit})")
                snapshot = self._snapshot(used, allowed=False, now=now)
                return snapshot.model_copy(update={"remaining": 0})

            counter = UsageCounter(date=date_key, ai_requests=used + 1, last_request_at=now)
            await self.store.set(
                user_collection(user_id, USAGE), date_key, counter.model_dump(mode="json")
            )
            return self._snapshot(used + 1, allowed=True, now=now)

        except Exception as e:
            logger.warning(f"Quota tracking failed for user {user_id}, allowing request: {e}")
            return self._snapshot(0, allowed=True, now=now)

    async def get_snapshot(self, user_id: str) -> QuotaSnapshot:
        """Current usage without reserving anything."""
        now = datetime.now(timezone.utc)
        used = await self._read_counter(user_id, today_key(now))
        return self._snapshot(used, allowed=used < self.daily_limit, now=now)

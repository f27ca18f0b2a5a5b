"""Natural-language recall over a user's saved items."""

import logging
from dataclasses import dataclass, field
from typing import List

from ..errors import InvalidInputError
from ..models.config import AppConfig
from ..models.item import SavedItem
from .enrichment import EnrichmentService
from .item_manager import ItemManager

logger = logging.getLogger(__name__)

EMPTY_LIBRARY_RESPONSE = (
    "You haven't saved any items yet. Start saving content to ask me questions about it!"
)


@dataclass
class ChatAnswer:
    response: str
    items: List[SavedItem] = field(default_factory=list)
    used_fallback: bool = False


def item_context(item: SavedItem) -> dict:
    """Compact item view sent to the model."""
    ai = item.ai_output
    return {
        "title": item.display_title or "Untitled",
        "summary": (ai.summary if ai else None) or "",
        "category": (ai.category if ai else None) or "",
        "tags": ", ".join(ai.tags if ai else []),
        "url": item.url,
    }


class ChatService:
    """Asks the enrichment chain to pick relevant items, degrading to a
    substring match over a smaller window when the model is unavailable.
    """

    def __init__(self, config: AppConfig, item_manager: ItemManager, enrichment: EnrichmentService):
        self.config = config
        self.item_manager = item_manager
        self.enrichment = enrichment

    async def ask(self, user_id: str, query: str) -> ChatAnswer:
        """Answer a query.

        Raises:
            InvalidInputError: If the query is empty
        """
        query = (query or "").strip()
        if not query:
            raise InvalidInputError("Query is required")

        try:
            items = await self.item_manager.list_recent(user_id, limit=self.config.chat_window_size)
            if not items:
                return ChatAnswer(response=EMPTY_LIBRARY_RESPONSE)

            response, indices = await self.enrichment.rank_items(
                query, [item_context(item) for item in items]
            )
            return ChatAnswer(response=response, items=[items[i] for i in indices])
        except Exception as e:
            logger.warning(f"AI chat failed for user {user_id}, falling back to keyword match: {e}")

        return await self.keyword_fallback(user_id, query)

    async def keyword_fallback(self, user_id: str, query: str) -> ChatAnswer:
        items = await self.item_manager.list_recent(
            user_id, limit=self.config.chat_fallback_window_size
        )
        needle = query.lower()

        matched = []
        for item in items:
            ai = item.ai_output
            if ai is None:
                continue
            fields = [
                (ai.summary or "").lower(),
                " ".join(ai.tags).lower(),
                (ai.title or "").lower(),
            ]
            if any(needle in f for f in fields):
                matched.append(item)

        return ChatAnswer(
            response=f'I found {len(matched)} items matching "{query}".',
            items=matched[: self.config.chat_fallback_max_results],
            used_fallback=True,
        )

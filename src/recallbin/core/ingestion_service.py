"""Quota-gated ingestion pipeline for saved content."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import DuplicateItemError, InternalError, InvalidInputError, QuotaExceededError
from ..models.config import AppConfig
from ..models.item import RawInput, SaveRequest, SavedItem
from ..models.usage import QuotaSnapshot
from .collection_manager import CollectionManager
from .document_store import StoreError
from .enrichment import EnrichmentService
from .item_manager import ItemManager
from .quota_tracker import QuotaTracker

logger = logging.getLogger(__name__)


@dataclass
class SaveOutcome:
    item: SavedItem
    quota: QuotaSnapshot
    used_fallback: bool


class IngestionService:
    """Runs duplicate check, quota reservation, enrichment, insert and
    collection counter update, in that order.

    None of the steps are isolated from concurrent saves: two saves of the
    same URL may both pass the duplicate check, and quota is consumed
    before enrichment so a failed enrichment is not refunded.
    """

    def __init__(
        self,
        config: AppConfig,
        item_manager: ItemManager,
        collection_manager: CollectionManager,
        quota_tracker: QuotaTracker,
        enrichment_service: EnrichmentService,
    ):
        self.config = config
        self.item_manager = item_manager
        self.collection_manager = collection_manager
        self.quota_tracker = quota_tracker
        self.enrichment_service = enrichment_service

    async def save(self, user_id: str, request: SaveRequest) -> SaveOutcome:
        """Save content for a user.

        Raises:
            InvalidInputError: If neither url nor content_text is provided
            DuplicateItemError: If the URL is already saved
            QuotaExceededError: If today's enrichment quota is used up
            InternalError: If the item cannot be persisted
        """
        if not request.url and not request.content_text:
            raise InvalidInputError("URL or content_text is required")

        if request.url:
            existing = await self.item_manager.find_by_url(user_id, request.url)
            if existing is not None:
                logger.info(f"Duplicate save of {request.url} for user {user_id} (item {existing.id})")
                raise DuplicateItemError(existing)

        quota = await self.quota_tracker.check_and_reserve(user_id)
        if not quota.allowed:
            raise QuotaExceededError(quota)

        enrichment = await self.enrichment_service.summarize(
            url=request.url,
            title=request.title,
            description=request.description,
            content_text=request.content_text,
            platform=request.platform,
        )
        if enrichment.used_fallback:
            logger.warning(f"Saving {request.url or 'note'} with fallback AI output")

        try:
            item = await self.item_manager.create_item(
                user_id=user_id,
                url=request.url,
                platform=request.platform,
                raw_input=RawInput(
                    title=request.title,
                    description=request.description,
                    content_text=request.content_text[: self.config.max_stored_content_chars],
                ),
                ai_output=enrichment.ai_output,
                collection_id=request.collection_id,
            )
        except StoreError as e:
            logger.error(f"Failed to persist item for user {user_id}: {e}")
            raise InternalError("Failed to save item", e) from e

        if request.collection_id:
            try:
                await self.collection_manager.increment_item_count(user_id, request.collection_id)
            except StoreError as e:
                logger.warning(
                    f"Item {item.id} saved but collection {request.collection_id} count not updated: {e}"
                )

        return SaveOutcome(item=item, quota=quota, used_fallback=enrichment.used_fallback)

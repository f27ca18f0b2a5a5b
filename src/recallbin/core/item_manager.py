"""Saved item persistence and mutation."""

import logging
from typing import List, Optional

from ..errors import ItemNotFoundError
from ..models.item import AIOutput, RawInput, SavedItem, to_iso, utc_now
from .collection_manager import CollectionManager
from .document_store import ITEMS, DocumentStore, user_collection

logger = logging.getLogger(__name__)


class ItemManager:
    """Manages saved item CRUD operations."""

    def __init__(self, store: DocumentStore, collections: CollectionManager):
        """Initialize item manager.

        Args:
            store: DocumentStore instance
            collections: CollectionManager used to keep item counts in step
        """
        self.store = store
        self.collections = collections

    async def create_item(
        self,
        user_id: str,
        url: str,
        platform: str,
        raw_input: RawInput,
        ai_output: Optional[AIOutput],
        collection_id: Optional[str] = None,
    ) -> SavedItem:
        """Insert a new item and return it with its store-assigned id.

        Raises:
            StoreError: If the insert fails
        """
        now = utc_now()
        draft = SavedItem(
            id="pending",
            url=url,
            platform=platform,
            collection_id=collection_id,
            raw_input=raw_input,
            ai_output=ai_output,
            created_at=now,
            updated_at=now,
            last_viewed_at=None,
        )
        item_id = await self.store.add(user_collection(user_id, ITEMS), draft.to_document())
        item = draft.model_copy(update={"id": item_id})

        logger.info(f"Created item {item.id} for user {user_id}: {item.display_title or item.url}")
        return item

    async def get_item(self, user_id: str, item_id: str) -> SavedItem:
        """Get item by ID.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        doc = await self.store.get(user_collection(user_id, ITEMS), item_id)
        if doc is None:
            raise ItemNotFoundError(item_id)
        return SavedItem.from_document(doc.id, doc.data)

    async def find_by_url(self, user_id: str, url: str) -> Optional[SavedItem]:
        """Return one existing item with exactly this URL, if any."""
        docs = await self.store.query(user_collection(user_id, ITEMS), where={"url": url}, limit=1)
        if not docs:
            return None
        return SavedItem.from_document(docs[0].id, docs[0].data)

    async def list_recent(
        self,
        user_id: str,
        limit: Optional[int] = None,
        collection_id: Optional[str] = None,
    ) -> List[SavedItem]:
        """Newest-first listing, optionally restricted to one collection."""
        where = {"collection_id": collection_id} if collection_id else None
        docs = await self.store.query(
            user_collection(user_id, ITEMS),
            where=where,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [SavedItem.from_document(d.id, d.data) for d in docs]

    async def update_item(
        self,
        user_id: str,
        item_id: str,
        collection_id: Optional[str] = None,
        clear_collection: bool = False,
        platform: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        category: Optional[str] = None,
    ) -> SavedItem:
        """Update mutable item fields.

        Moving an item between collections adjusts both collections'
        counters.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        item = await self.get_item(user_id, item_id)

        update_data = {}
        if platform is not None:
            update_data["platform"] = platform
        if title is not None or description is not None:
            raw = item.raw_input.model_dump()
            if title is not None:
                raw["title"] = title
            if description is not None:
                raw["description"] = description
            update_data["raw_input"] = RawInput(**raw).model_dump()
        if tags is not None or category is not None:
            ai = item.ai_output or AIOutput()
            if tags is not None:
                ai = ai.model_copy(update={"tags": AIOutput(tags=tags).tags})
            if category is not None:
                ai = ai.model_copy(update={"category": category.strip() or None})
            update_data["ai_output"] = ai.model_dump(mode="json")

        new_collection = None if clear_collection else collection_id
        collection_changed = (clear_collection or collection_id is not None) and (
            new_collection != item.collection_id
        )
        if collection_changed:
            update_data["collection_id"] = new_collection

        update_data["updated_at"] = to_iso(utc_now())
        doc = await self.store.update(user_collection(user_id, ITEMS), item_id, update_data)

        if collection_changed:
            if item.collection_id:
                await self.collections.decrement_item_count(user_id, item.collection_id)
            if new_collection:
                await self.collections.increment_item_count(user_id, new_collection)

        logger.info(f"Updated item {item_id}")
        return SavedItem.from_document(doc.id, doc.data)

    async def delete_item(self, user_id: str, item_id: str) -> SavedItem:
        """Delete an item and release its collection membership.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        item = await self.get_item(user_id, item_id)
        await self.store.delete(user_collection(user_id, ITEMS), item_id)

        if item.collection_id:
            await self.collections.decrement_item_count(user_id, item.collection_id)

        logger.info(f"Deleted item {item_id} for user {user_id}")
        return item

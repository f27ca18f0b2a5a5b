"""Collection CRUD and denormalized item-count maintenance."""

import logging
from typing import List, Optional

from ..errors import CollectionNotFoundError, InvalidInputError, ItemNotFoundError
from ..models.collection import NAME_MAX_LENGTH, Collection
from ..models.item import to_iso, utc_now
from .document_store import COLLECTIONS, ITEMS, DocumentNotFoundError, DocumentStore, user_collection

logger = logging.getLogger(__name__)


class CollectionManager:
    """Manages collections and keeps ``item_count`` in step with membership.

    Counter updates are read-increment-write without isolation: concurrent
    membership changes on the same collection can lose an update.
    Deleting a collection leaves member items pointing at it.
    """

    def __init__(self, store: DocumentStore, default_color: str = "#8B5CF6"):
        self.store = store
        self.default_color = default_color

    async def list_collections(self, user_id: str) -> List[Collection]:
        docs = await self.store.query(
            user_collection(user_id, COLLECTIONS), order_by="created_at", descending=True
        )
        return [Collection.from_document(d.id, d.data) for d in docs]

    async def get_collection(self, user_id: str, collection_id: str) -> Collection:
        """Get collection by ID.

        Raises:
            CollectionNotFoundError: If the collection doesn't exist
        """
        doc = await self.store.get(user_collection(user_id, COLLECTIONS), collection_id)
        if doc is None:
            raise CollectionNotFoundError(collection_id)
        return Collection.from_document(doc.id, doc.data)

    async def create_collection(
        self,
        user_id: str,
        name: Optional[str],
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Collection:
        """Create a collection with a zero item count.

        Raises:
            InvalidInputError: If the name is missing, blank or too long
        """
        if not name or not name.strip():
            raise InvalidInputError("Collection name is required")
        name = _checked_name(name)

        now = utc_now()
        data = {
            "name": name,
            "description": description or "",
            "color": color or self.default_color,
            "item_count": 0,
            "created_at": to_iso(now),
            "updated_at": to_iso(now),
        }
        collection_id = await self.store.add(user_collection(user_id, COLLECTIONS), data)

        logger.info(f"Created collection {collection_id} for user {user_id}: {data['name']}")
        return Collection.from_document(collection_id, data)

    async def update_collection(
        self,
        user_id: str,
        collection_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Collection:
        """Update the provided fields only.

        Raises:
            CollectionNotFoundError: If the collection doesn't exist
            InvalidInputError: If a blank or too long name is supplied
        """
        update_data = {"updated_at": to_iso(utc_now())}
        if name is not None:
            if not name.strip():
                raise InvalidInputError("Collection name cannot be empty")
            update_data["name"] = _checked_name(name)
        if description is not None:
            update_data["description"] = description
        if color:
            update_data["color"] = color

        try:
            doc = await self.store.update(
                user_collection(user_id, COLLECTIONS), collection_id, update_data
            )
        except DocumentNotFoundError:
            raise CollectionNotFoundError(collection_id)

        logger.info(f"Updated collection {collection_id}")
        return Collection.from_document(doc.id, doc.data)

    async def delete_collection(self, user_id: str, collection_id: str) -> None:
        """Delete a collection without touching its member items.

        Raises:
            CollectionNotFoundError: If the collection doesn't exist
        """
        existed = await self.store.delete(user_collection(user_id, COLLECTIONS), collection_id)
        if not existed:
            raise CollectionNotFoundError(collection_id)
        logger.info(f"Deleted collection {collection_id} (member items keep their reference)")

    async def increment_item_count(self, user_id: str, collection_id: str) -> Optional[Collection]:
        """Add one to ``item_count`` if the collection exists."""
        return await self._adjust_item_count(user_id, collection_id, 1)

    async def decrement_item_count(self, user_id: str, collection_id: str) -> Optional[Collection]:
        """Subtract one from ``item_count``, never going below zero."""
        return await self._adjust_item_count(user_id, collection_id, -1)

    async def _adjust_item_count(
        self, user_id: str, collection_id: str, delta: int
    ) -> Optional[Collection]:
        path = user_collection(user_id, COLLECTIONS)
        doc = await self.store.get(path, collection_id)
        if doc is None:
            logger.debug(f"Collection {collection_id} not found, count left unchanged")
            return None

        current = int(doc.data.get("item_count") or 0)
        updated = await self.store.update(
            path,
            collection_id,
            {"item_count": max(0, current + delta), "updated_at": to_iso(utc_now())},
        )
        logger.debug(f"Collection {collection_id} item_count {current} -> {updated.data['item_count']}")
        return Collection.from_document(updated.id, updated.data)

    async def add_item_to_collection(
        self, user_id: str, collection_id: str, item_id: str
    ) -> Optional[Collection]:
        """Point the item at the collection, then bump the collection's count.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        await self._set_item_collection(user_id, item_id, collection_id)
        return await self.increment_item_count(user_id, collection_id)

    async def remove_item_from_collection(
        self, user_id: str, collection_id: str, item_id: str
    ) -> Optional[Collection]:
        """Clear the item's collection, then lower the collection's count.

        Raises:
            ItemNotFoundError: If the item doesn't exist
        """
        await self._set_item_collection(user_id, item_id, None)
        return await self.decrement_item_count(user_id, collection_id)

    async def _set_item_collection(
        self, user_id: str, item_id: str, collection_id: Optional[str]
    ) -> None:
        try:
            await self.store.update(
                user_collection(user_id, ITEMS),
                item_id,
                {"collection_id": collection_id, "updated_at": to_iso(utc_now())},
            )
        except DocumentNotFoundError:
            raise ItemNotFoundError(item_id)


def _checked_name(name: str) -> str:
    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidInputError(f"Collection name must be at most {NAME_MAX_LENGTH} characters")
    return name

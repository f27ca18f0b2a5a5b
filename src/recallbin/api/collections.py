"""Collection CRUD and membership endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..core.auth import Identity
from ..errors import InternalError, InvalidInputError, RecallBinError
from ..services import ServiceContainer
from .dependencies import get_current_user, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


class CollectionRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class CollectionItemRequest(BaseModel):
    item_id: Optional[str] = Field(None, alias="itemId")

    model_config = ConfigDict(populate_by_name=True)


@router.get("/collections")
async def list_collections(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Newest collections first."""
    try:
        collections = await services.collections.list_collections(user.user_id)
        return [c.model_dump(mode="json") for c in collections]
    except Exception as e:
        logger.error(f"Failed to list collections: {e}")
        raise InternalError("Failed to list collections", e) from e


@router.post("/collections", status_code=201)
async def create_collection(
    request: CollectionRequest,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        collection = await services.collections.create_collection(
            user.user_id, request.name, request.description, request.color
        )
        return collection.model_dump(mode="json")
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to create collection: {e}")
        raise InternalError("Failed to create collection", e) from e


@router.put("/collections/{collection_id}")
async def update_collection(
    collection_id: str,
    request: CollectionRequest,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Update only the fields present in the body."""
    try:
        collection = await services.collections.update_collection(
            user.user_id,
            collection_id,
            name=request.name,
            description=request.description,
            color=request.color,
        )
        return collection.model_dump(mode="json")
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to update collection {collection_id}: {e}")
        raise InternalError("Failed to update collection", e) from e


@router.delete("/collections/{collection_id}")
async def delete_collection(
    collection_id: str,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Delete the collection; member items keep their collection reference."""
    try:
        await services.collections.delete_collection(user.user_id, collection_id)
        return {"message": "Collection deleted successfully", "id": collection_id}
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to delete collection {collection_id}: {e}")
        raise InternalError("Failed to delete collection", e) from e


@router.post("/collections/{collection_id}/items")
async def add_item_to_collection(
    collection_id: str,
    request: CollectionItemRequest,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        if not request.item_id:
            raise InvalidInputError("itemId is required")
        await services.collections.add_item_to_collection(
            user.user_id, collection_id, request.item_id
        )
        return {"message": "Item added to collection"}
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to add item to collection {collection_id}: {e}")
        raise InternalError("Failed to add item to collection", e) from e


@router.delete("/collections/{collection_id}/items/{item_id}")
async def remove_item_from_collection(
    collection_id: str,
    item_id: str,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.collections.remove_item_from_collection(
            user.user_id, collection_id, item_id
        )
        return {"message": "Item removed from collection"}
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to remove item from collection {collection_id}: {e}")
        raise InternalError("Failed to remove item from collection", e) from e

"""Saved item endpoints: save, search, quota, update, delete."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from ..core.auth import Identity
from ..core.search_service import SearchFilters
from ..errors import InternalError, RecallBinError
from ..models.item import SaveRequest
from ..models.usage import QuotaSnapshot
from ..services import ServiceContainer
from .dependencies import get_current_user, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


class UpdateItemRequest(BaseModel):
    """Mutable item fields; omitted fields are left unchanged.

    An explicit ``null`` collection removes the item from its collection.
    """

    collection_id: Optional[str] = Field(None, alias="collectionId")
    platform: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


def rate_limit_headers(response: Response, quota: QuotaSnapshot) -> None:
    response.headers["X-RateLimit-Limit"] = str(quota.limit)
    response.headers["X-RateLimit-Remaining"] = str(quota.remaining)
    response.headers["X-RateLimit-Reset"] = quota.reset_date


@router.post("/save", status_code=201)
async def save_item(
    request: SaveRequest,
    response: Response,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Run the ingestion pipeline for a URL or note."""
    try:
        outcome = await services.ingestion.save(user.user_id, request)
        rate_limit_headers(response, outcome.quota)
        return {
            "id": outcome.item.id,
            "message": "Content saved and processed successfully",
            "data": outcome.item.model_dump(mode="json"),
            "quota": outcome.quota.model_dump(mode="json"),
        }
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to save item: {e}")
        raise InternalError("Failed to save item", e) from e


@router.get("/search")
async def search_items(
    q: Optional[str] = Query(None, description="Case-insensitive text query"),
    category: Optional[str] = None,
    content_type: Optional[str] = Query(None, alias="contentType"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    collection_id: Optional[str] = Query(None, alias="collectionId"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Filter the most recent window of items."""
    try:
        filters = SearchFilters(
            text_query=q,
            category=category or None,
            content_type=content_type or None,
            date_from=date_from or None,
            date_to=date_to or None,
            collection_id=None if collection_id in (None, "", "all") else collection_id,
            limit=limit,
        )
        result = await services.search.search(user.user_id, filters)
        return {
            "items": [item.model_dump(mode="json") for item in result.items],
            "total": result.total,
            "filters": filters.as_dict(),
        }
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Search failed: {e}")
        raise InternalError("Search failed", e) from e


@router.get("/quota", response_model=QuotaSnapshot)
async def get_quota(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Today's usage without consuming quota."""
    try:
        return await services.quota.get_snapshot(user.user_id)
    except Exception as e:
        logger.error(f"Failed to read quota: {e}")
        raise InternalError("Failed to read quota", e) from e


@router.get("/items/{item_id}")
async def get_item(
    item_id: str,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        item = await services.items.get_item(user.user_id, item_id)
        return item.model_dump(mode="json")
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to get item {item_id}: {e}")
        raise InternalError("Failed to get item", e) from e


@router.put("/update/{item_id}")
async def update_item(
    item_id: str,
    request: UpdateItemRequest,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Update mutable fields; moving collections adjusts both counters."""
    try:
        sent = request.model_fields_set
        clear_collection = "collection_id" in sent and not request.collection_id
        item = await services.items.update_item(
            user.user_id,
            item_id,
            collection_id=request.collection_id or None,
            clear_collection=clear_collection,
            platform=request.platform,
            title=request.title,
            description=request.description,
            tags=request.tags,
            category=request.category,
        )
        return {"message": "Item updated", "data": item.model_dump(mode="json")}
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to update item {item_id}: {e}")
        raise InternalError("Failed to update item", e) from e


@router.delete("/delete/{item_id}")
async def delete_item(
    item_id: str,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.items.delete_item(user.user_id, item_id)
        return {"message": "Item deleted successfully", "id": item_id}
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to delete item {item_id}: {e}")
        raise InternalError("Failed to delete item", e) from e

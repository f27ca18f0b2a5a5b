"""Review reminder endpoints."""

import logging

from fastapi import APIRouter, Depends

from ..core.auth import Identity
from ..errors import InternalError, RecallBinError
from ..services import ServiceContainer
from .dependencies import get_current_user, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/reminders")
async def get_due_items(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Items saved about a week ago and not opened since."""
    try:
        items = await services.reminders.get_due_items(user.user_id)
        return {"items": [item.model_dump(mode="json") for item in items], "count": len(items)}
    except Exception as e:
        logger.error(f"Failed to compute reminders: {e}")
        raise InternalError("Failed to compute reminders", e) from e


@router.post("/reminders/mark-read/{item_id}")
async def mark_read(
    item_id: str,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.reminders.mark_viewed(user.user_id, item_id)
        return {"message": "Marked as read", "id": item_id}
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Failed to mark item {item_id} as read: {e}")
        raise InternalError("Failed to mark item as read", e) from e


@router.get("/reminders/stats")
async def reminder_stats(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.reminders.get_stats(user.user_id)
    except Exception as e:
        logger.error(f"Failed to compute reminder stats: {e}")
        raise InternalError("Failed to compute reminder stats", e) from e

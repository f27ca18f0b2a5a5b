"""Bulk export endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..core import exporters
from ..core.auth import Identity
from ..errors import InternalError
from ..services import ServiceContainer
from .dependencies import get_current_user, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


async def _export(fmt: str, user: Identity, services: ServiceContainer) -> Response:
    try:
        items = await services.items.list_recent(user.user_id)
        body = exporters.RENDERERS[fmt](items)
    except Exception as e:
        logger.error(f"Failed to export {fmt} for user {user.user_id}: {e}")
        raise InternalError(f"Failed to export {fmt}", e) from e

    logger.info(f"Exported {len(items)} items as {fmt} for user {user.user_id}")
    return Response(
        content=body,
        media_type=exporters.FORMATS[fmt].media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{exporters.export_filename(fmt)}"'
        },
    )


@router.get("/export/json")
async def export_json(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    return await _export("json", user, services)


@router.get("/export/csv")
async def export_csv(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    return await _export("csv", user, services)


@router.get("/export/markdown")
async def export_markdown(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    return await _export("markdown", user, services)


@router.get("/export/pdf")
async def export_pdf(
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    return await _export("pdf", user, services)

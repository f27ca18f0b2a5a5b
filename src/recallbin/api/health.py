"""Health check endpoint."""

from fastapi import APIRouter, Depends

from .. import __version__
from ..services import ServiceContainer
from .dependencies import get_services

router = APIRouter()


@router.get("/health")
async def health_check(services: ServiceContainer = Depends(get_services)):
    """Health check endpoint (no authentication)."""
    store_accessible = services.store.is_accessible()

    return {
        "status": "healthy" if store_accessible else "degraded",
        "version": __version__,
        "environment": services.config.environment,
        "store_accessible": store_accessible,
        "providers": services.enrichment.get_provider_status(),
    }

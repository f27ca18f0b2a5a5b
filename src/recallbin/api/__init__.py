"""FastAPI application and routes."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import ConfigManager, apply_env_keys
from ..errors import InternalError, RecallBinError, UnauthorizedError
from ..models.config import AppConfig
from ..services import ServiceContainer, build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting RecallBin API...")

    if getattr(app.state, "services", None) is None:
        config_manager: ConfigManager = app.state.config_manager
        try:
            env_settings = config_manager.load_env_settings()
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise

        app_config = apply_env_keys(app.state.config, env_settings)
        app.state.services = await build_services(
            app_config,
            config_manager.resolve_data_dir(app_config),
            env_settings=env_settings,
        )

    yield

    logger.info("Shutting down RecallBin API...")


def _error_body(exc: RecallBinError, environment: str) -> dict:
    message = exc.message
    if isinstance(exc, InternalError) and environment == "production":
        message = exc.public_message
    return {"error": exc.error_tag, "message": message, **exc.details}


HTTP_ERROR_TAGS = {
    404: "not_found",
    405: "method_not_allowed",
}


def install_error_handlers(app: FastAPI, environment: str) -> None:
    """Render every error response as ``{"error", "message", ...details}``."""

    @app.exception_handler(RecallBinError)
    async def recallbin_error_handler(request: Request, exc: RecallBinError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, environment),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_input", "message": "; ".join(messages) or "Invalid request"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": HTTP_ERROR_TAGS.get(exc.status_code, "http_error"),
                "message": str(exc.detail),
            },
            headers=getattr(exc, "headers", None),
        )


def create_app(
    config: Optional[AppConfig] = None,
    config_manager: Optional[ConfigManager] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Application config; loaded from ``config_manager`` when omitted
        config_manager: Source of config.yaml and .env
        services: Prebuilt service container; skips construction in the lifespan
    """
    if services is not None:
        config = services.config
    config_manager = config_manager or ConfigManager()
    if config is None:
        config = config_manager.load_app_config()

    app = FastAPI(
        title="RecallBin API",
        description="Save links and notes, enriched with AI summaries, for later recall",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.config_manager = config_manager
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_origin_regex=r"^(https?://(localhost|127\.0\.0\.1)(:\d+)?|chrome-extension://[a-z]+)$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app, config.environment)

    from .chat import router as chat_router
    from .collections import router as collections_router
    from .export import router as export_router
    from .health import router as health_router
    from .items import router as items_router
    from .reminders import router as reminders_router

    app.include_router(items_router, prefix="/api", tags=["items"])
    app.include_router(collections_router, prefix="/api", tags=["collections"])
    app.include_router(export_router, prefix="/api", tags=["export"])
    app.include_router(reminders_router, prefix="/api", tags=["reminders"])
    app.include_router(chat_router, prefix="/api", tags=["chat"])
    app.include_router(health_router, prefix="/api", tags=["health"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "RecallBin API",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/health",
        }

    return app

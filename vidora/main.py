"""
Vidora — Main FastAPI Application

Video content service: videos, comments, likes and their cascading deletes.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy.ext.asyncio import AsyncEngine

from vidora.core import database
from vidora.core.config import Settings, get_settings
from vidora.core.errors import ErrorKind, STATUS_BY_KIND, ServiceError
from vidora.schemas.schemas import ErrorResponse
from vidora.services.cascade.cascade_engine import CascadeEngine
from vidora.services.comments.comment_service import CommentService
from vidora.services.likes.like_service import like_service
from vidora.services.media.media_store import LocalMediaStore, MediaStore
from vidora.services.videos.video_service import VideoService


# ── Logging ──────────────────────────────────────────────────────────────

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
    )


logger = structlog.get_logger()


# ── Error handling ───────────────────────────────────────────────────────

async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, kind=exc.kind.value, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(**exc.to_dict()).model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    kind = ErrorKind.INVALID_ARGUMENT
    return JSONResponse(
        status_code=STATUS_BY_KIND[kind],
        content=ErrorResponse(
            kind=kind.value,
            message="Malformed request.",
            details={"errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()
            ]},
        ).model_dump(),
    )


# ── App ──────────────────────────────────────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    media_store: Optional[MediaStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    engine = engine or database.engine
    session_factory = (
        database.async_session_factory if engine is database.engine
        else database.build_session_factory(engine)
    )
    media_store = media_store or LocalMediaStore.from_settings(settings)
    cascade = CascadeEngine(session_factory, media_store, settings.cascade_max_concurrency)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown hooks."""
        logger.info("Starting Vidora", version=settings.app_version)
        await database.init_db(engine)
        logger.info("Vidora ready", api_prefix=settings.api_prefix)

        yield

        await engine.dispose()
        logger.info("Shutting down Vidora")

    app = FastAPI(
        title=settings.app_name,
        description="Video content service with ownership-gated mutations and cascading deletes",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.media_store = media_store
    app.state.cascade = cascade
    app.state.video_service = VideoService(media_store, cascade, settings)
    app.state.comment_service = CommentService(cascade, settings)
    app.state.like_service = like_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Prometheus metrics
    app.mount("/metrics", make_asgi_app())

    from vidora.api.routes import comments, likes, videos

    app.include_router(videos.router, prefix=settings.api_prefix)
    app.include_router(comments.router, prefix=settings.api_prefix)
    app.include_router(likes.router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()

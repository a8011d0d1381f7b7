"""FastAPI application for the Pathshala learning platform."""

from __future__ import annotations

import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pathshala.auth.identity import IdentityProvider, SupabaseIdentityProvider
from pathshala.auth.routes import router as auth_router
from pathshala.common.errors import (
    AppError,
    AuthError,
    Forbidden,
    NotFound,
    PartialFailure,
    SessionConflict,
    StoreError,
    UploadError,
    ValidationError,
)
from pathshala.core.config import Settings, get_settings
from pathshala.db.binding import BindingRegistry
from pathshala.db.store import RecordStore, SupabaseStore
from pathshala.db.supabase import get_supabase
from pathshala.features.calendar.endpoints import router as calendar_router
from pathshala.features.challenges.endpoints import router as challenges_router
from pathshala.features.community.endpoints import router as community_router
from pathshala.features.dashboard.endpoints import router as dashboard_router
from pathshala.features.profiles.endpoints import router as profiles_router
from pathshala.features.progress.endpoints import router as progress_router
from pathshala.features.quizzes.endpoints import router as quizzes_router
from pathshala.features.topics.endpoints import router as topics_router
from pathshala.features.videos.endpoints import router as videos_router
from pathshala.storage.endpoints import router as files_router
from pathshala.storage.upload import StorageUploader

logger = logging.getLogger("app")

_CORS_ORIGIN_REGEX = re.compile(r"https?://(localhost|127\.0\.0\.1)(:\d+)?", re.I)

UPLOAD_STATUS = {
    "unauthenticated": 401,
    "bucket_not_found": 404,
    "quota_exceeded": 413,
    "invalid_format": 415,
    "unknown": 500,
}


def _split_csv(raw: str):
    return [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]


def status_for(exc: AppError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, SessionConflict):
        return 409
    if isinstance(exc, Forbidden):
        return 403
    if isinstance(exc, AuthError):
        return 401
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, PartialFailure):
        return 502
    if isinstance(exc, StoreError):
        return 403 if exc.kind == "permission_denied" else 503
    if isinstance(exc, UploadError):
        return UPLOAD_STATUS.get(exc.kind, 500)
    return 400


def _error_body(exc: AppError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    if isinstance(exc, PartialFailure):
        body["completed"] = exc.completed
        body["remaining"] = exc.remaining
    return body


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[RecordStore] = None,
    identity: Optional[IdentityProvider] = None,
    uploader: Optional[StorageUploader] = None,
) -> FastAPI:
    """Build the application; anything not injected is wired to Supabase on startup."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = app.state
        if getattr(state, "store", None) is None:
            state.store = SupabaseStore(get_supabase, timeout=settings.query_timeout)
        if getattr(state, "bindings", None) is None:
            state.bindings = BindingRegistry(state.store, poll_seconds=settings.binding_poll_seconds)
        if getattr(state, "identity", None) is None:
            state.identity = SupabaseIdentityProvider(settings)
        if getattr(state, "uploader", None) is None:
            state.uploader = StorageUploader(
                get_supabase, bucket=settings.storage_bucket, timeout=settings.upload_timeout
            )
        logger.info("app.startup version=%s poll_seconds=%s", settings.app_version, settings.binding_poll_seconds)
        try:
            yield
        finally:
            await state.bindings.close()
            logger.info("app.shutdown")

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.bindings = BindingRegistry(store, poll_seconds=settings.binding_poll_seconds) if store is not None else None
    app.state.identity = identity
    app.state.uploader = uploader
    app.state.started_at = datetime.now(timezone.utc)

    origins = _split_csv(settings.allow_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=_CORS_ORIGIN_REGEX.pattern,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        incoming = request.headers.get("X-Request-Id") or request.headers.get("X-Request-ID")
        req_id = incoming or str(uuid.uuid4())
        request.state.request_id = req_id
        log = logging.getLogger("request")
        log.info("request.start request_id=%s method=%s path=%s", req_id, request.method, request.url.path)
        t0 = time.perf_counter()
        response = await call_next(request)
        ms = int((time.perf_counter() - t0) * 1000)
        response.headers["X-Request-Id"] = req_id
        log.info(
            "request.end request_id=%s path=%s status_code=%d ms=%d",
            req_id,
            request.url.path,
            response.status_code,
            ms,
        )
        return response

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(
                "request.failed path=%s code=%s error=%s", request.url.path, exc.code, exc, exc_info=exc
            )
        return JSONResponse(status_code=status_code, content=_error_body(exc))

    app.include_router(auth_router)
    app.include_router(files_router)
    app.include_router(topics_router)
    app.include_router(videos_router)
    app.include_router(quizzes_router)
    app.include_router(progress_router)
    app.include_router(profiles_router)
    app.include_router(community_router)
    app.include_router(calendar_router)
    app.include_router(challenges_router)
    app.include_router(dashboard_router)

    @app.get("/", tags=["meta"], summary="API Root")
    async def root():
        return {
            "name": settings.app_name,
            "status": "ok",
            "docs": "/docs",
            "health": "/healthz",
        }

    @app.get("/healthz", tags=["meta"], summary="Liveness / readiness probe")
    async def healthz() -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        registry = getattr(app.state, "bindings", None)
        return {
            "status": "ok",
            "version": settings.app_version,
            "uptime_seconds": round((now - app.state.started_at).total_seconds(), 1),
            "bindings": len(registry) if registry is not None else 0,
            "supabase_configured": bool(settings.supabase_url),
            "routes": len(app.routes),
        }

    return app


app = create_app()

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from civic_requests.api.admin.audit import router as audit_router
from civic_requests.api.service_requests import router as service_requests_router
from civic_requests.core.config import Settings, get_settings
from civic_requests.core.errors import (
    AuthorizationError,
    CivicError,
    ConflictError,
    NotFoundError,
    StorageUnavailable,
    Unauthenticated,
    ValidationError,
)
from civic_requests.core.logging import RequestContextMiddleware, setup_logging
from civic_requests.core.security import PrincipalResolver
from civic_requests.services.audit_service import AuditService
from civic_requests.services.file_storage import LocalFileStorage
from civic_requests.services.notifications import NotificationHub, Notifier
from civic_requests.services.requests import RequestService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 422,
    Unauthenticated: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    StorageUnavailable: 503,
}


def _build_repositories(settings: Settings):
    if settings.storage_backend == "memory":
        from civic_requests.repositories.memory import (
            InMemoryAuditRepository,
            InMemoryServiceRequestRepository,
            InMemoryUserRepository,
        )

        return (
            InMemoryServiceRequestRepository(),
            InMemoryUserRepository(),
            InMemoryAuditRepository(),
        )

    from civic_requests.db.mongo import get_db
    from civic_requests.repositories.audit_repository import AuditRepository
    from civic_requests.repositories.requests import ServiceRequestRepository
    from civic_requests.repositories.user_repository import UserRepository

    db = get_db(settings)
    timeout = settings.storage_timeout_seconds
    return (
        ServiceRequestRepository(db["service_requests"], timeout),
        UserRepository(db["users"], timeout),
        AuditRepository(db["audit_logs"], timeout),
    )


async def civic_error_handler(request: Request, exc: CivicError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    body = {"detail": exc.message}
    headers = None
    if isinstance(exc, ValidationError):
        body["errors"] = [e.to_dict() for e in exc.errors]
    if isinstance(exc, StorageUnavailable):
        headers = {"Retry-After": "1"}
    if status_code == 500:
        logger.error("unhandled core error", exc_info=exc)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    *,
    request_repo=None,
    user_repo=None,
    audit_repo=None,
    notification_hub: Optional[NotificationHub] = None,
) -> FastAPI:
    settings = settings or get_settings()

    if request_repo is None or user_repo is None or audit_repo is None:
        built = _build_repositories(settings)
        request_repo = request_repo or built[0]
        user_repo = user_repo or built[1]
        audit_repo = audit_repo or built[2]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        if settings.storage_backend == "mongo":
            from civic_requests.db.mongo import close_client, ensure_indexes, get_db

            await ensure_indexes(get_db(settings))
            yield
            await app.state.notifier.drain()
            close_client()
        else:
            yield
            await app.state.notifier.drain()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    hub = notification_hub or NotificationHub(settings.notification_queue_size)
    audit_service = AuditService(audit_repo)
    notifier = Notifier(hub)

    app.state.settings = settings
    app.state.notification_hub = hub
    app.state.notifier = notifier
    app.state.audit_service = audit_service
    app.state.user_repo = user_repo
    app.state.principal_resolver = PrincipalResolver(user_repo)
    app.state.file_storage = LocalFileStorage(settings.upload_dir, settings.max_upload_bytes)
    app.state.request_service = RequestService(
        request_repo,
        audit_service,
        notifier,
        hide_forbidden=settings.hide_forbidden_requests,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(CivicError, civic_error_handler)

    app.include_router(service_requests_router)
    app.include_router(audit_router)

    # static uploads (attachments)
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    @app.get("/health")
    async def health():
        return {"ok": True, "backend": settings.storage_backend}

    @app.get("/")
    def root():
        return {"ok": True, "docs": "/docs"}

    return app

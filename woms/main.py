import os
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text

from .config import Settings
from .container import Container, build_container
from .db import Base
from .errors import register_error_handlers
from .logging import RequestIdMiddleware, setup_logging
from .auth.router import router as auth_router
from .routes.analytics import router as analytics_router
from .routes.attachments import router as attachments_router
from .routes.comments import router as comments_router
from .routes.notifications import router as notifications_router
from .routes.time_logs import router as time_logs_router
from .routes.users import router as users_router
from .routes.work_orders import router as work_orders_router


logger = structlog.get_logger(__name__)


def _ensure_sqlite_dir(database_url: str) -> None:
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        directory = os.path.dirname(database_url[len("sqlite:///"):])
        if directory:
            os.makedirs(directory, exist_ok=True)


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings)
    _ensure_sqlite_dir(settings.database_url)
    container = container or build_container(settings)

    app = FastAPI(title=settings.app_name)
    app.state.container = container

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        return JSONResponse(status_code=429, content={"success": False, "error": "Too many requests, try again later"})

    register_error_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(work_orders_router)
    app.include_router(comments_router)
    app.include_router(time_logs_router)
    app.include_router(users_router)
    app.include_router(notifications_router)
    app.include_router(attachments_router)
    app.include_router(analytics_router)

    # Locally stored attachments are served straight from disk
    if settings.storage_provider == "local":
        os.makedirs(settings.local_storage_dir, exist_ok=True)
        app.mount("/files/local", StaticFiles(directory=settings.local_storage_dir), name="local-files")

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        db = container.session_factory()
        try:
            db.execute(text("SELECT 1"))
            return {"success": True, "data": {"status": "ok", "environment": settings.environment}}
        finally:
            db.close()

    @app.on_event("startup")
    def _startup():
        logger.info("startup", environment=settings.environment, auto_create_db=settings.auto_create_db)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=container.engine)

    return app


def run() -> None:
    import uvicorn

    settings = Settings()
    uvicorn.run("woms.main:create_app", factory=True, host=settings.host, port=settings.port)

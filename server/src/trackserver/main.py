"""FastAPI application."""
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .aggregator import Aggregator
from .auth import RateLimiter
from .config import Settings
from .db import Store
from .deps import get_store
from .errors import StorageError, TrackerError
from .files import FileStore
from .models import HealthResponse
from .reconciler import Reconciler
from .retention import SCREENSHOT_RETENTION
from .routers import analytics, auth, devices, screenshots, sync
from .screenshots import ScreenshotService
from .users import count_users

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. The store is opened on startup and closed on shutdown."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = Store(settings.database_path, timeout=settings.database_timeout)
        store.open()
        files = FileStore(settings.upload_dir)

        app.state.store = store
        app.state.files = files
        app.state.reconciler = Reconciler(store, max_events=settings.max_events_per_push)
        app.state.aggregator = Aggregator(store)
        app.state.screenshots = ScreenshotService(
            store, files,
            retention=SCREENSHOT_RETENTION.with_cap(settings.screenshot_cap),
            max_upload_bytes=settings.max_upload_bytes,
        )
        try:
            yield
        finally:
            store.close()

    app = FastAPI(
        title="Activity Tracker",
        version="2.0.0",
        description="Multi-device activity tracking: usage sync, screenshots and analytics",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError):
        if isinstance(exc, StorageError):
            # Cause was logged where it was raised
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # Health check (no auth)
    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(store: Store = Depends(get_store)):
        now = datetime.now(timezone.utc).isoformat()
        try:
            return HealthResponse(
                status="healthy",
                database="connected",
                schema_version=store.schema_version(),
                users=count_users(store),
                timestamp=now,
            )
        except StorageError:
            return JSONResponse(
                status_code=503,
                content=HealthResponse(
                    status="unhealthy",
                    database="unavailable",
                    schema_version=None,
                    timestamp=now,
                ).model_dump()
            )

    limiter = RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window_seconds)
    sync_limiter = RateLimiter(settings.sync_rate_limit_max_requests, settings.rate_limit_window_seconds)

    # Sync traffic is frequent and gets its own, higher limit
    app.include_router(sync.router, prefix="/api", dependencies=[Depends(sync_limiter)])
    for router in (auth.router, devices.router, screenshots.router, analytics.router):
        app.include_router(router, prefix="/api", dependencies=[Depends(limiter)])

    return app


app = create_app()

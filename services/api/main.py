"""
Sheet Editor - Backend API
FastAPI service: users edit their own rows of a shared Google Sheet,
edits are stored in SQL (or JSON files) and written back best-effort.

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000

Run one sync (cron):
python -m core.sheet_sync --scheduled
"""

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from collections import defaultdict
from typing import Optional
import contextvars
import logging
import os
import time
import uuid

from settings import Settings, get_settings
from adapters.base import StorageAdapter
from adapters.factory import build_storage_adapter
from core.column_policy import ColumnDisplayPolicy
from core.edit_persistence import EditService
from core.mirror import MirrorDispatcher, RowForwarder, build_forwarder
from core.sessions import SessionRegistry
from core.sheet_source import SheetSource
from core.sheet_sync import SyncJob
from core.alerts import SyncAlerter

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0"


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageAdapter] = None,
    sheet_source: Optional[SheetSource] = None,
    forwarder: Optional[RowForwarder] = None,
) -> FastAPI:
    """
    Build the API. Anything not passed in is built from settings.
    """
    settings = settings or get_settings()

    # ============================================================================
    # STORAGE / COLLABORATORS
    # ============================================================================
    logger.info(f"🔧 Storage Backend: {settings.storage_backend.upper()}")
    if storage is None:
        try:
            storage = build_storage_adapter(settings)
        except Exception as e:
            logger.error(f"✗ Failed to initialize storage: {e}")
            raise

    if sheet_source is None:
        sheet_source = SheetSource(
            spreadsheet_host=settings.spreadsheet_host,
            sheet_id=settings.sheet_id,
            timeout=settings.http_timeout_seconds,
            cache_ttl_seconds=settings.sheet_cache_ttl_seconds,
        )

    dispatcher = MirrorDispatcher(forwarder or build_forwarder(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.startup_time = time.time()
        logger.info("Sheet Editor API starting up...")
        logger.info(f"Storage Backend: {settings.storage_backend.upper()}")
        logger.info(f"Sheet ID: {settings.sheet_id or '(not set)'}")
        logger.info(f"Mirror backend: {settings.mirror_backend}")
        logger.info(f"Allowed origins: {settings.get_origins_list()}")
        yield
        logger.info("Sheet Editor API shutting down...")
        await dispatcher.wait_for_forwards()
        dispose = getattr(storage, "dispose", None)
        if callable(dispose):
            dispose()

    app = FastAPI(
        title="Sheet Editor API",
        description="Per-user row editing on top of a shared Google Sheet",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage_backend = settings.storage_backend.lower()
    app.state.storage_adapter = storage
    app.state.sheet_source = sheet_source
    app.state.sessions = SessionRegistry(
        ttl_seconds=settings.session_ttl_seconds,
        maxsize=settings.session_max_count,
    )
    app.state.dispatcher = dispatcher
    app.state.edit_service = EditService(storage, dispatcher)
    app.state.sync_job = SyncJob(
        source=sheet_source.uncached(),
        storage=storage,
        alerter=SyncAlerter(settings),
    )
    app.state.column_policy = ColumnDisplayPolicy.from_settings(settings)
    app.state.startup_time = time.time()
    app.state.request_metrics = {
        "total_requests": defaultdict(int),  # by endpoint
        "total_latency": defaultdict(float),  # by endpoint
        "status_codes": defaultdict(int),  # by status code
    }

    # ========== Request Tracing Middleware ==========
    @app.middleware("http")
    async def request_tracing_middleware(request, call_next):
        """Add request_id and timing to all requests."""
        request_id = str(uuid.uuid4())[:8]
        request_id_var.set(request_id)
        started = time.time()

        response = await call_next(request)

        latency = time.time() - started
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round(latency * 1000, 2),
            }
        )

        metrics = app.state.request_metrics
        endpoint = f"{request.method} {request.url.path}"
        metrics["total_requests"][endpoint] += 1
        metrics["total_latency"][endpoint] += latency
        metrics["status_codes"][response.status_code] += 1

        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    # ============================================================================
    # ENDPOINTS
    # ============================================================================
    @app.get("/")
    async def root():
        """API root endpoint"""
        return {
            "message": "Sheet Editor API",
            "version": API_VERSION,
            "backend": app.state.storage_backend,
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        try:
            storage.ping()
            return {
                "status": "healthy",
                "backend": app.state.storage_backend,
                "version": API_VERSION
            }
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "backend": app.state.storage_backend, "error": str(e)}
            )

    @app.get("/healthz")
    async def healthz():
        """
        Kubernetes-style liveness probe.
        Returns 200 if the application is running.
        """
        return {
            "status": "ok",
            "timestamp": time.time(),
            "version": API_VERSION
        }

    @app.get("/readyz")
    async def readyz():
        """
        Kubernetes-style readiness probe.
        Returns 200 if storage is reachable, 503 if not.
        """
        try:
            storage.ping()
            return {
                "status": "ready",
                "backend": app.state.storage_backend,
                "sheet_configured": bool(settings.sheet_id),
                "active_sessions": len(app.state.sessions),
                "timestamp": time.time()
            }
        except Exception as e:
            logger.error(f"Readiness check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "not_ready",
                    "backend": app.state.storage_backend,
                    "error": str(e),
                    "timestamp": time.time()
                }
            )

    @app.get("/metrics")
    async def get_metrics():
        """
        Request counts, average latencies and in-flight write-backs.
        """
        metrics = app.state.request_metrics
        avg_latencies = {}
        for endpoint, total_latency in metrics["total_latency"].items():
            count = metrics["total_requests"][endpoint]
            avg_latencies[endpoint] = round((total_latency / count) * 1000, 2) if count > 0 else 0

        return {
            "timestamp": time.time(),
            "uptime_seconds": round(time.time() - app.state.startup_time, 2),
            "backend": app.state.storage_backend,
            "requests": {
                "by_endpoint": dict(metrics["total_requests"]),
                "by_status": dict(metrics["status_codes"]),
                "total": sum(metrics["total_requests"].values()),
            },
            "latency": {
                "by_endpoint_ms": avg_latencies,
            },
            "sessions": len(app.state.sessions),
            "pending_forwards": dispatcher.pending,
        }

    from routers import sheet as sheet_router
    app.include_router(sheet_router.router)

    from routers import edits as edits_router
    app.include_router(edits_router.router)

    from routers import sync as sync_router
    app.include_router(sync_router.router)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port)

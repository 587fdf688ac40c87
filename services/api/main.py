"""
SignDesk - PDF signature placement & compositing API
FastAPI over SQLite records and a local bucket store.

Install dependencies:
pip install -e .[test]

Run server:
uvicorn main:create_app --factory --host 0.0.0.0 --port 8000
"""

import contextvars
import logging
import os
import time
import traceback
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.base import RecordAdapter
from adapters.sqlite import SqliteAdapter
from core.blob_store import BlobStore, LocalBlobStore
from core.editor_sessions import EditorSessionRegistry
from core.errors import SignDeskError
from core.pdf_pages import configure_cache
from routers import documents, editor, files, signatures
from settings import Settings, get_settings

API_VERSION = "1.0"

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _error_body(request: Request, detail: str, code: str, exc: Optional[BaseException] = None) -> dict:
    body = {"detail": detail, "code": code}
    rid = request_id_var.get()
    if rid:
        body["request_id"] = rid
    # operators only; never on for end users
    if exc is not None and request.app.state.settings.debug_errors:
        body["error_type"] = type(exc).__name__
        body["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def create_app(
    settings: Optional[Settings] = None,
    records: Optional[RecordAdapter] = None,
    blobs: Optional[BlobStore] = None,
    sessions: Optional[EditorSessionRegistry] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title="SignDesk API",
        description="Place signature marks on PDF pages and burn them into a signed copy",
        version=API_VERSION,
    )

    # ============================================================================
    # COLLABORATORS
    # ============================================================================
    app.state.settings = settings
    app.state.records = records if records is not None else SqliteAdapter.from_url(settings.db_url)
    app.state.blobs = blobs if blobs is not None else LocalBlobStore(
        settings.blob_root, settings.public_base_url, settings.fetch_timeout_s
    )
    app.state.sessions = sessions if sessions is not None else EditorSessionRegistry(
        maxsize=settings.editor_session_max, ttl_s=settings.editor_session_ttl_s
    )
    configure_cache(settings.page_cache_max, settings.page_cache_ttl_s)

    # ========== Request tracing ==========
    @app.middleware("http")
    async def request_tracing_middleware(request, call_next):
        """Add request_id and timing to all requests."""
        request_id = str(uuid.uuid4())[:8]
        token = request_id_var.set(request_id)
        started = time.time()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        latency_ms = round((time.time() - started) * 1000, 2)
        logger.info(
            "%s %s -> %d (%.2f ms) [%s]",
            request.method, request.url.path, response.status_code, latency_ms, request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================================================
    # ERROR HANDLERS
    # ============================================================================
    @app.exception_handler(SignDeskError)
    async def signdesk_exception_handler(request: Request, exc: SignDeskError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message, exc_info=exc)
        else:
            logger.info("%s: %s", exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.code, exc.__cause__ or exc),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "Internal server error", "INTERNAL_ERROR", exc),
        )

    # ============================================================================
    # ENDPOINTS
    # ============================================================================
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        try:
            app.state.records.ping()
            return {"status": "healthy", "backend": "sqlite", "version": API_VERSION}
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "backend": "sqlite", "error": str(e)},
            )

    @app.get("/healthz")
    async def healthz():
        """
        Kubernetes-style liveness probe.
        Returns 200 if the application is running.
        """
        return {"status": "ok", "timestamp": time.time(), "version": API_VERSION}

    @app.get("/readyz")
    async def readyz():
        """
        Kubernetes-style readiness probe.
        Checks that records are reachable and the blob root is writable.
        Returns 200 if ready, 503 if not ready.
        """
        try:
            app.state.records.ping()
            blob_root = getattr(app.state.blobs, "root", None)
            if blob_root is not None and not os.access(blob_root, os.W_OK):
                raise RuntimeError(f"blob root {blob_root} is not writable")
            return {
                "status": "ready",
                "backend": "sqlite",
                "open_sessions": len(app.state.sessions),
                "timestamp": time.time(),
            }
        except Exception as e:
            logger.error(f"Readiness check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "error": str(e), "timestamp": time.time()},
            )

    app.include_router(documents.router)
    app.include_router(signatures.router)
    app.include_router(editor.router)
    app.include_router(files.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("SignDesk API starting up...")
        logger.info(f"Database: {settings.db_url.split('://')[0]}")
        logger.info(f"Blob root: {settings.blob_root}")
        logger.info(f"Allowed origins: {settings.get_origins_list()}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("SignDesk API shutting down...")
        dispose = getattr(app.state.records, "dispose", None)
        if dispose is not None:
            dispose()

    return app


# built on demand so importing this module opens no database
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=port, log_level="info")

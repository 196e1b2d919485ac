# app/main.py
from __future__ import annotations

"""
# MoviesNow CMS — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the MoviesNow content-management
core (series publication workflow, sub-content sliders and their fan-out).

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**: 1) request id → 2) CORS → 3) gzip.
- Centralized exception handling (`app.core.exception_handlers`).
- The document store is built once and injected (`app.docstore.get_document_store`);
  tests pass their own store to `create_app(document_store=...)`.
- Graceful local/dev behavior (best-effort Redis, never crash on import).

## Probes
- `/healthz` — liveness (process up).
- `/readyz`  — readiness (document store ping + Redis).
- `/metrics` — Prometheus exposition.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse, Response

from app.api.v1.routers import router as api_v1_router
from app.core.config import settings
from app.core.exception_handlers import register_exception_handlers
from app.core.logger import setup_logging
from app.core.redis_client import redis_wrapper
from app.db.session import dispose_engine
from app.docstore import DocumentStore, get_document_store, set_document_store
from app.middleware.request_id import RequestIDMiddleware

logger = logging.getLogger("app.main")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup:
        - Best-effort connect to Redis (the public read cache fails open).
    Shutdown:
        - Close Redis, dispose the SQL engine if one was created.
    """
    logger.info("✅ %s starting up (env=%s)", settings.PROJECT_NAME, settings.ENV)
    try:
        await redis_wrapper.connect()
        logger.info("🔌 Redis connected")
    except Exception:
        logger.exception("Redis connect failed (continuing without the public read cache)")

    try:
        yield
    finally:
        await redis_wrapper.close()
        await dispose_engine()
        logger.info("🛑 %s shutting down", settings.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(document_store: Optional[DocumentStore] = None) -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Args:
        document_store: store to serve from; defaults to the configured backend.
    """
    setup_logging()
    if document_store is not None:
        set_document_store(document_store)

    docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    # ── Middlewares (last added runs first) ─────────────────────────────────
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    origins = settings.frontend_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "X-Request-ID", "If-None-Match"],
            expose_headers=["X-Request-ID", "ETag"],
        )
    app.add_middleware(RequestIDMiddleware)  # outermost: correlation id for everything below

    register_exception_handlers(app)

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe; no external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> JSONResponse:
        """Readiness probe: document store ping plus Redis (Redis is advisory)."""
        try:
            store_ok = await get_document_store().ping()
        except Exception:
            logger.exception("Document store ping failed")
            store_ok = False
        redis_ok = await redis_wrapper.is_connected()
        body = {"ready": bool(store_ok), "checks": {"docstore": store_ok, "redis": redis_ok}}
        return JSONResponse(body, status_code=200 if store_ok else 503)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse({"name": settings.PROJECT_NAME, "docs": app.docs_url or "", "version": settings.VERSION})

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn/Gunicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn app.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )

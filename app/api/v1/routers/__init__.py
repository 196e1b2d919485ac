"""
🧭✨ MoviesNow CMS • API v1 Router Aggregator
============================================

Exports both the **combined `router`** (ready to include) and each **individual
sub-router** so callers can mount them as needed.

Layout
------
- `/producer/...` : series, sliders, sub-content (owner or privileged)
- `/admin/...`    : publication workflow transitions
- `/public/...`   : published series reads

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Security notes
--------------
- 🔐 This layer is a pure aggregator; **auth lives in child routers**.
"""

from fastapi import APIRouter

from .admin import router as admin_router
from .producer import router as producer_router
from .public import router as public_router


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Factory: build a combined v1 router with stable path layout
# ─────────────────────────────────────────────────────────────────────────────
def build_v1_router() -> APIRouter:
    """Compose the API v1 surface into a single `APIRouter`."""
    r = APIRouter()
    r.include_router(producer_router, prefix="/producer")
    r.include_router(admin_router, prefix="/admin")
    r.include_router(public_router, prefix="/public")
    return r


router = build_v1_router()

__all__ = [
    "router",
    "build_v1_router",
    "admin_router",
    "producer_router",
    "public_router",
]

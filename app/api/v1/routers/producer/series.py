"""
MoviesNow CMS · Producer Series
===============================

Endpoints (authenticated producer; privileged roles may act on any series)
--------------------------------------------------------------------------
- GET    /producer/series                    : List my series (draft + live status)
- POST   /producer/series                    : Create series (slug derived from title)
- GET    /producer/series/{series_id}        : Get draft copy
- PATCH  /producer/series/{series_id}        : Update draft copy (slug change = rename)
- PUT    /producer/series/{series_id}/slug   : Rename slug (409 + suggestion if taken)
- DELETE /producer/series/{series_id}        : Delete series + slug reservation

Practices
---------
- Producers only ever write the draft copy; the public copy moves through the
  publication workflow (`/admin/series/{id}/...`).
- Responses carry `Cache-Control: no-store`.
"""

from __future__ import annotations

# ── [Imports] ─────────────────────────────────────────────────────────────────────────────
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.http_utils import json_no_store, sanitize_doc_id
from app.core.security import AuthContext, get_current_caller
from app.dependencies.services import get_series_service
from app.schemas.series import SeriesCreate, SeriesUpdate, SlugRename
from app.services.series_service import SeriesService

# ── [Router] ─────────────────────────────────────────────────────────────────────────────
router = APIRouter(prefix="/series", tags=["Producer Series"])


# ─────────────────────────────────────────────────────────────────────────────
# 📚 List / 📦 Create
# ─────────────────────────────────────────────────────────────────────────────
@router.get("", summary="List my series")
async def list_my_series(
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> JSONResponse:
    items = await series.list_producer_series(caller.effective_producer_id)
    return json_no_store({"items": items, "total": len(items)})


@router.post("", summary="Create series", status_code=status.HTTP_201_CREATED)
async def create_series(
    payload: SeriesCreate,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> JSONResponse:
    draft = await series.create_series(caller.effective_producer_id, payload)
    return json_no_store(draft, status_code=status.HTTP_201_CREATED)


# ─────────────────────────────────────────────────────────────────────────────
# 🔎 Read / ✏️ Update draft
# ─────────────────────────────────────────────────────────────────────────────
@router.get("/{series_id}", summary="Get series draft")
async def get_series_draft(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> JSONResponse:
    return json_no_store(await series.get_draft(sanitize_doc_id(series_id, "series_id"), caller))


@router.patch("/{series_id}", summary="Update series draft")
async def update_series_draft(
    series_id: str,
    payload: SeriesUpdate,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> JSONResponse:
    draft = await series.update_draft(
        sanitize_doc_id(series_id, "series_id"), caller.effective_producer_id, payload
    )
    return json_no_store(draft)


@router.put("/{series_id}/slug", summary="Rename series slug")
async def rename_series_slug(
    series_id: str,
    payload: SlugRename,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> JSONResponse:
    draft = await series.rename_slug(
        sanitize_doc_id(series_id, "series_id"), caller.effective_producer_id, payload.slug
    )
    return json_no_store(draft)


# ─────────────────────────────────────────────────────────────────────────────
# 🗑️ Delete
# ─────────────────────────────────────────────────────────────────────────────
@router.delete("/{series_id}", summary="Delete series")
async def delete_series(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> JSONResponse:
    series_id = sanitize_doc_id(series_id, "series_id")
    await series.delete_series(series_id, caller)
    return json_no_store({"id": series_id, "deleted": True})

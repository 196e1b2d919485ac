"""
MoviesNow CMS · Producer Series Sub-content
===========================================

Endpoints (series owner or privileged role)
-------------------------------------------
- GET    /producer/series/{series_id}/subcontent                  : List (?status=draft|published|all)
- POST   /producer/series/{series_id}/subcontent                  : Create (status defaults to draft)
- GET    /producer/series/{series_id}/subcontent/{sub_content_id} : Get
- PATCH  /producer/series/{series_id}/subcontent/{sub_content_id} : Update + resync embedding sliders
- DELETE /producer/series/{series_id}/subcontent/{sub_content_id} : Delete + remove from sliders

Update/delete responses include the slider sync outcome under `propagation`;
a failed sync never fails the write itself (it is retried by the dispatcher
and logged when it gives up).
"""

from __future__ import annotations

# ── [Imports] ─────────────────────────────────────────────────────────────────────────────
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.api.http_utils import json_no_store, sanitize_doc_id
from app.dependencies.services import get_subcontent_service, owned_series_id
from app.schemas.content import SubContentCreate, SubContentUpdate
from app.services.subcontent_service import SubContentService

# ── [Router] ─────────────────────────────────────────────────────────────────────────────
router = APIRouter(prefix="/series/{series_id}/subcontent", tags=["Producer Sub-content"])


@router.get("", summary="List sub-content")
async def list_sub_content(
    series_id: str = Depends(owned_series_id),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(draft|published|all)$"),
    svc: SubContentService = Depends(get_subcontent_service),
) -> JSONResponse:
    items = await svc.list(series_id, status=status_filter)
    return json_no_store({"items": items, "total": len(items)})


@router.post("", summary="Create sub-content", status_code=status.HTTP_201_CREATED)
async def create_sub_content(
    payload: SubContentCreate,
    series_id: str = Depends(owned_series_id),
    svc: SubContentService = Depends(get_subcontent_service),
) -> JSONResponse:
    doc = await svc.create(series_id, payload)
    return json_no_store(doc, status_code=status.HTTP_201_CREATED)


@router.get("/{sub_content_id}", summary="Get sub-content")
async def get_sub_content(
    sub_content_id: str,
    series_id: str = Depends(owned_series_id),
    svc: SubContentService = Depends(get_subcontent_service),
) -> JSONResponse:
    return json_no_store(await svc.get(series_id, sanitize_doc_id(sub_content_id, "sub_content_id")))


@router.patch("/{sub_content_id}", summary="Update sub-content")
async def update_sub_content(
    sub_content_id: str,
    payload: SubContentUpdate,
    series_id: str = Depends(owned_series_id),
    svc: SubContentService = Depends(get_subcontent_service),
) -> JSONResponse:
    doc = await svc.update(series_id, sanitize_doc_id(sub_content_id, "sub_content_id"), payload)
    sync = svc.last_trigger.as_dict() if svc.last_trigger else None
    return json_no_store({"subContent": doc, "propagation": sync})


@router.delete("/{sub_content_id}", summary="Delete sub-content")
async def delete_sub_content(
    sub_content_id: str,
    series_id: str = Depends(owned_series_id),
    svc: SubContentService = Depends(get_subcontent_service),
) -> JSONResponse:
    doc = await svc.delete(series_id, sanitize_doc_id(sub_content_id, "sub_content_id"))
    sync = svc.last_trigger.as_dict() if svc.last_trigger else None
    return json_no_store({**doc, "deleted": True, "propagation": sync})

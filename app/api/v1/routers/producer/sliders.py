"""
MoviesNow CMS · Producer Sub-content Sliders
============================================

Series page sliders
-------------------
- GET    /producer/series/{series_id}/sliders
- POST   /producer/series/{series_id}/sliders
- GET    /producer/series/{series_id}/sliders/{slider_id}
- DELETE /producer/series/{series_id}/sliders/{slider_id}             : also drops item pointers
- POST   /producer/series/{series_id}/sliders/{slider_id}/items       : embed sub-content snapshot
- PATCH  /producer/series/{series_id}/sliders/{slider_id}/items/{key} : hide/show item
- DELETE /producer/series/{series_id}/sliders/{slider_id}/items/{key}

Episode page sliders
--------------------
Same shape under `/producer/episodes/{episode_id}/sliders`; the episode's
`seriesId` decides ownership and where usage pointers are kept.
"""

from __future__ import annotations

# ── [Imports] ─────────────────────────────────────────────────────────────────────────────
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.http_utils import json_no_store, sanitize_doc_id
from app.core.security import AuthContext, get_current_caller
from app.dependencies.services import get_series_service, get_slider_service, owned_series_id
from app.schemas.content import SliderCreate, SliderItemCreate, SliderItemVisibility
from app.services.series_service import SeriesService
from app.services.sliders_service import SliderService, SliderTarget

# ── [Router] ─────────────────────────────────────────────────────────────────────────────
router = APIRouter(tags=["Producer Sliders"])


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Helpers
# ─────────────────────────────────────────────────────────────────────────────
async def _ensure_episode_owner(
    episode_id: str,
    caller: AuthContext,
    series: SeriesService,
    sliders: SliderService,
) -> str:
    series_id = await sliders.episode_series_id(sanitize_doc_id(episode_id, "episode_id"))
    await series.get_draft(series_id, caller)
    return series_id


async def _episode_target(
    episode_id: str,
    slider_id: str,
    caller: AuthContext,
    series: SeriesService,
    sliders: SliderService,
) -> SliderTarget:
    await _ensure_episode_owner(episode_id, caller, series, sliders)
    return await sliders.episode_target(episode_id, sanitize_doc_id(slider_id, "slider_id"))


# ╔═══════════════════════════════ Series sliders ═══════════════════════════════╗

@router.get("/series/{series_id}/sliders", summary="List series sliders")
async def list_series_sliders(
    series_id: str = Depends(owned_series_id),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    items = await sliders.list_series_sliders(series_id)
    return json_no_store({"items": items, "total": len(items)})


@router.post("/series/{series_id}/sliders", summary="Create series slider", status_code=status.HTTP_201_CREATED)
async def create_series_slider(
    payload: SliderCreate,
    series_id: str = Depends(owned_series_id),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    doc = await sliders.create_series_slider(series_id, payload)
    return json_no_store(doc, status_code=status.HTTP_201_CREATED)


@router.get("/series/{series_id}/sliders/{slider_id}", summary="Get series slider")
async def get_series_slider(
    slider_id: str,
    series_id: str = Depends(owned_series_id),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = sliders.series_target(series_id, sanitize_doc_id(slider_id, "slider_id"))
    return json_no_store(await sliders.get_slider(target))


@router.delete("/series/{series_id}/sliders/{slider_id}", summary="Delete series slider")
async def delete_series_slider(
    slider_id: str,
    series_id: str = Depends(owned_series_id),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = sliders.series_target(series_id, sanitize_doc_id(slider_id, "slider_id"))
    return json_no_store(await sliders.delete_slider(target))


@router.post(
    "/series/{series_id}/sliders/{slider_id}/items",
    summary="Add sub-content to series slider",
    status_code=status.HTTP_201_CREATED,
)
async def add_series_slider_item(
    slider_id: str,
    payload: SliderItemCreate,
    series_id: str = Depends(owned_series_id),
    caller: AuthContext = Depends(get_current_caller),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = sliders.series_target(series_id, sanitize_doc_id(slider_id, "slider_id"))
    doc = await sliders.add_item(target, payload, created_by=caller.uid)
    return json_no_store(doc, status_code=status.HTTP_201_CREATED)


@router.patch("/series/{series_id}/sliders/{slider_id}/items/{item_key}", summary="Hide/show series slider item")
async def set_series_slider_item_visibility(
    slider_id: str,
    item_key: str,
    payload: SliderItemVisibility,
    series_id: str = Depends(owned_series_id),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = sliders.series_target(series_id, sanitize_doc_id(slider_id, "slider_id"))
    return json_no_store(await sliders.set_item_hidden(target, item_key, payload.is_hidden))


@router.delete("/series/{series_id}/sliders/{slider_id}/items/{item_key}", summary="Remove series slider item")
async def remove_series_slider_item(
    slider_id: str,
    item_key: str,
    series_id: str = Depends(owned_series_id),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = sliders.series_target(series_id, sanitize_doc_id(slider_id, "slider_id"))
    return json_no_store(await sliders.remove_item(target, item_key))


# ╔══════════════════════════════ Episode sliders ═══════════════════════════════╗

@router.get("/episodes/{episode_id}/sliders", summary="List episode sliders")
async def list_episode_sliders(
    episode_id: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    await _ensure_episode_owner(episode_id, caller, series, sliders)
    items = await sliders.list_episode_sliders(episode_id)
    return json_no_store({"items": items, "total": len(items)})


@router.post("/episodes/{episode_id}/sliders", summary="Create episode slider", status_code=status.HTTP_201_CREATED)
async def create_episode_slider(
    episode_id: str,
    payload: SliderCreate,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    await _ensure_episode_owner(episode_id, caller, series, sliders)
    doc = await sliders.create_episode_slider(episode_id, payload)
    return json_no_store(doc, status_code=status.HTTP_201_CREATED)


@router.get("/episodes/{episode_id}/sliders/{slider_id}", summary="Get episode slider")
async def get_episode_slider(
    episode_id: str,
    slider_id: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = await _episode_target(episode_id, slider_id, caller, series, sliders)
    return json_no_store(await sliders.get_slider(target))


@router.delete("/episodes/{episode_id}/sliders/{slider_id}", summary="Delete episode slider")
async def delete_episode_slider(
    episode_id: str,
    slider_id: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = await _episode_target(episode_id, slider_id, caller, series, sliders)
    return json_no_store(await sliders.delete_slider(target))


@router.post(
    "/episodes/{episode_id}/sliders/{slider_id}/items",
    summary="Add sub-content to episode slider",
    status_code=status.HTTP_201_CREATED,
)
async def add_episode_slider_item(
    episode_id: str,
    slider_id: str,
    payload: SliderItemCreate,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = await _episode_target(episode_id, slider_id, caller, series, sliders)
    doc = await sliders.add_item(target, payload, created_by=caller.uid)
    return json_no_store(doc, status_code=status.HTTP_201_CREATED)


@router.patch("/episodes/{episode_id}/sliders/{slider_id}/items/{item_key}", summary="Hide/show episode slider item")
async def set_episode_slider_item_visibility(
    episode_id: str,
    slider_id: str,
    item_key: str,
    payload: SliderItemVisibility,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = await _episode_target(episode_id, slider_id, caller, series, sliders)
    return json_no_store(await sliders.set_item_hidden(target, item_key, payload.is_hidden))


@router.delete("/episodes/{episode_id}/sliders/{slider_id}/items/{item_key}", summary="Remove episode slider item")
async def remove_episode_slider_item(
    episode_id: str,
    slider_id: str,
    item_key: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> JSONResponse:
    target = await _episode_target(episode_id, slider_id, caller, series, sliders)
    return json_no_store(await sliders.remove_item(target, item_key))

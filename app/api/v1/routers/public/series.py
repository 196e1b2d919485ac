"""
MoviesNow CMS · Public Series
=============================

Routes
- GET /public/series/{series_id}              : PUBLISHED public copy (404 otherwise)
- GET /public/series/{series_id}/subcontent   : published sub-content of a PUBLISHED series
- GET /public/series/{series_id}/sliders      : series sliders with active, visible items only

Caching
- Series documents are read through Redis (`PublicSeriesCache`).
- Responses carry a strong ETag + `Cache-Control: public` and honor
  `If-None-Match` (304).
"""

from __future__ import annotations

# ── [Imports] ─────────────────────────────────────────────────────────────────────────────
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, Response

from app.api.http_utils import cache_json_response, sanitize_doc_id
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.dependencies.services import get_series_service, get_slider_service, get_subcontent_service
from app.services.series_service import SeriesService
from app.services.sliders_service import SliderService
from app.services.subcontent_service import SubContentService

# ── [Router] ─────────────────────────────────────────────────────────────────────────────
router = APIRouter(prefix="/series", tags=["Public Series"])


def _ttl() -> int:
    return max(0, settings.PUBLIC_SERIES_CACHE_TTL_SECONDS)


def _public_slider(slider: Dict[str, Any]) -> Dict[str, Any]:
    items: List[Dict[str, Any]] = [
        i for i in slider.get("items") or [] if i.get("isActive") and not i.get("isHidden")
    ]
    return {**slider, "items": items}


async def _published_or_404(series_id: str, series: SeriesService) -> Dict[str, Any]:
    doc = await series.get_public_series(sanitize_doc_id(series_id, "series_id"))
    if doc is None:
        raise NotFoundError("Series not found")
    return doc


@router.get("/{series_id}", summary="Get published series")
async def get_public_series(
    series_id: str,
    request: Request,
    series: SeriesService = Depends(get_series_service),
) -> Response:
    doc = await _published_or_404(series_id, series)
    return cache_json_response(request, _ttl(), doc)


@router.get("/{series_id}/subcontent", summary="List published sub-content")
async def list_public_sub_content(
    series_id: str,
    request: Request,
    series: SeriesService = Depends(get_series_service),
    svc: SubContentService = Depends(get_subcontent_service),
) -> Response:
    await _published_or_404(series_id, series)
    items = await svc.list_published(series_id, check_series_status=False)
    return cache_json_response(request, _ttl(), {"items": items, "total": len(items)})


@router.get("/{series_id}/sliders", summary="List series sliders (public view)")
async def list_public_sliders(
    series_id: str,
    request: Request,
    series: SeriesService = Depends(get_series_service),
    sliders: SliderService = Depends(get_slider_service),
) -> Response:
    await _published_or_404(series_id, series)
    items = [_public_slider(s) for s in await sliders.list_series_sliders(series_id)]
    return cache_json_response(request, _ttl(), {"items": items, "total": len(items)})

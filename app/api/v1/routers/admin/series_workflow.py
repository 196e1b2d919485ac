"""
MoviesNow CMS · Series Publication Workflow
===========================================

Endpoints
---------
- POST /admin/series/{series_id}/submit-review    : owner → IN_REVIEW (draft copied to public)
- POST /admin/series/{series_id}/approve          : privileged → PUBLISHED
- POST /admin/series/{series_id}/reject           : privileged → REJECTED (optional notes)
- POST /admin/series/{series_id}/hide             : owner or privileged → HIDDEN
- POST /admin/series/{series_id}/publish-updates  : owner, PUBLISHED only (draft → public)

Error mapping
-------------
NotFound 404 · Forbidden 403 · ValidationFailed 422 (itemized `details.errors`)
· StatusConflict 409 (`details.currentStatus`). Role checks happen inside the
workflow transaction, not here, so the rules hold for every caller.
"""

from __future__ import annotations

# ── [Imports] ─────────────────────────────────────────────────────────────────────────────
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.api.http_utils import json_no_store, sanitize_doc_id
from app.core.security import AuthContext, get_current_caller
from app.dependencies.services import get_workflow
from app.schemas.series import ReviewDecision
from app.services.publication_workflow import PublicationWorkflow

logger = logging.getLogger(__name__)

# ── [Router] ─────────────────────────────────────────────────────────────────────────────
router = APIRouter(prefix="/series", tags=["Series Workflow"])


def _ok(message: str, data: Dict[str, Any]) -> JSONResponse:
    return json_no_store({"success": True, "message": message, "data": data})


@router.post("/{series_id}/submit-review", summary="Submit series for review")
async def submit_series_for_review(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    workflow: PublicationWorkflow = Depends(get_workflow),
) -> JSONResponse:
    doc = await workflow.submit_for_review(sanitize_doc_id(series_id, "series_id"), caller.effective_producer_id)
    return _ok("Series submitted for review", doc)


@router.post("/{series_id}/approve", summary="Approve series (privileged)")
async def approve_series(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    workflow: PublicationWorkflow = Depends(get_workflow),
) -> JSONResponse:
    doc = await workflow.approve_series(sanitize_doc_id(series_id, "series_id"), caller.role)
    logger.info("Series %s approved by %s", series_id, caller.uid)
    return _ok("Series approved and published", doc)


@router.post("/{series_id}/reject", summary="Reject series (privileged)")
async def reject_series(
    series_id: str,
    payload: Optional[ReviewDecision] = Body(None),
    caller: AuthContext = Depends(get_current_caller),
    workflow: PublicationWorkflow = Depends(get_workflow),
) -> JSONResponse:
    notes = payload.notes if payload else None
    doc = await workflow.reject_series(sanitize_doc_id(series_id, "series_id"), caller.role, notes)
    logger.info("Series %s rejected by %s", series_id, caller.uid)
    return _ok("Series rejected", doc)


@router.post("/{series_id}/hide", summary="Hide a published series")
async def hide_series(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    workflow: PublicationWorkflow = Depends(get_workflow),
) -> JSONResponse:
    doc = await workflow.hide_series(
        sanitize_doc_id(series_id, "series_id"), caller.effective_producer_id, caller.role
    )
    return _ok("Series hidden", doc)


@router.post("/{series_id}/publish-updates", summary="Publish draft edits of a live series")
async def publish_series_updates(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    workflow: PublicationWorkflow = Depends(get_workflow),
) -> JSONResponse:
    doc = await workflow.publish_updates(sanitize_doc_id(series_id, "series_id"), caller.effective_producer_id)
    return _ok("Series updates published", doc)

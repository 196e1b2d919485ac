from __future__ import annotations

"""
Admin router package (v1)
=========================

Series publication workflow endpoints. Mount with a base path:

    app.include_router(admin_v1.router, prefix="/api/v1/admin")

Notes
-----
• Common 401/403/404/409/422 response docs are added at include-time for a
  uniform OpenAPI; behavior is unchanged.
"""

from typing import Any, Dict

from fastapi import APIRouter, status

from .series_workflow import router as series_workflow_router

COMMON_ADMIN_RESPONSES: Dict[int, Dict[str, Any]] = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Missing or invalid bearer token"},
    status.HTTP_403_FORBIDDEN: {"description": "Forbidden"},
    status.HTTP_404_NOT_FOUND: {"description": "Series not found"},
    status.HTTP_409_CONFLICT: {"description": "Illegal transition from the current status"},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"description": "Series is incomplete"},
}

router = APIRouter()  # callers mount with prefix="/api/v1/admin"
router.include_router(series_workflow_router, responses=COMMON_ADMIN_RESPONSES)

__all__ = ["router", "series_workflow_router", "COMMON_ADMIN_RESPONSES"]

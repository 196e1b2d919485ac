"""
Producer router package (v1)
============================

Aggregates the producer-facing routers (series, sliders, sub-content) into a
single `router`; mount it with prefix `/producer`.
"""

from fastapi import APIRouter, status

from .series import router as series_router
from .sliders import router as sliders_router
from .subcontent import router as subcontent_router

COMMON_PRODUCER_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Missing or invalid bearer token"},
    status.HTTP_403_FORBIDDEN: {"description": "Caller does not own this series"},
    status.HTTP_404_NOT_FOUND: {"description": "Series, slider or sub-content not found"},
}

router = APIRouter()
router.include_router(series_router, responses=COMMON_PRODUCER_RESPONSES)
router.include_router(sliders_router, responses=COMMON_PRODUCER_RESPONSES)
router.include_router(subcontent_router, responses=COMMON_PRODUCER_RESPONSES)

__all__ = ["router", "series_router", "sliders_router", "subcontent_router"]
